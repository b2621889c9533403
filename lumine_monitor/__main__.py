"""
Lumine Monitor 主程序入口

使用方式:
    python -m lumine_monitor
    或
    lumine-monitor
"""

from lumine_monitor.main import cli


if __name__ == "__main__":
    cli()
