"""
主程序入口

启动两个并发任务：
1. 探测调度循环
2. REST / WebSocket API 服务
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import uvicorn
from pydantic import ValidationError

from . import __version__
from .config import AppConfig, get_config
from .service import MonitorService, build_service

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(config: AppConfig):
    """配置日志"""
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    # 根 logger 已有 handler 时 basicConfig 不生效
    logging.getLogger().setLevel(level)

    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_api_server(service: MonitorService, config: AppConfig):
    """运行 API 服务器"""
    from .api.app import create_app

    app = create_app(service, config)

    server_config = uvicorn.Config(
        app=app,
        host=config.api.host,
        port=config.api.port,
        log_level="info",
        access_log=False
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def main(config: Optional[AppConfig] = None):
    """主函数：启动所有任务"""
    if config is None:
        config = get_config()

    setup_logging(config)
    logger.info("=" * 60)
    logger.info(f"Lumine Monitor v{__version__}")
    logger.info("=" * 60)
    logger.info(f"Config loaded: API={config.api.host}:{config.api.port}")

    service = build_service(config)

    logger.info("Starting concurrent tasks...")

    # API 服务退出（如收到 SIGINT）时，finally 中停止调度循环
    try:
        service.scheduler.start()
        await run_api_server(service, config)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        await service.shutdown()


def cli():
    """命令行入口"""
    try:
        # 配置错误在调度开始前直接失败
        config = get_config()
    except ValidationError as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error(f"Invalid configuration:\n{e}")
        sys.exit(1)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()
