"""
パッケージとして実行するためのエントリポイント

【使用方法】
python -m monitor
python -m monitor --once
"""

from monitor.monitor_loop import main

main()
