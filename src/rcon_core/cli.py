# src/rcon_core/cli.py
"""
rcon-core 命令行工具。

用法:
    rcon-core --address 127.0.0.1:27015 --password secret status
    rcon-core --config rcon.toml --profile lan      # 交互模式，逐行读取 stdin

配置优先级: 命令行参数 > TOML 文件 (--config) > 环境变量 (RCON_*, 支持 .env)。
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from . import __version__
from .client import RconClient
from .config import RconConfig, create_config_from_dict, load_config_from_toml, read_env_config
from .exceptions import AuthError, ConfigError, RconError

logger = logging.getLogger("RconCLI")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_AUTH = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rcon-core", description="Source RCON 命令行客户端"
    )
    parser.add_argument("command", nargs="*", help="要执行的指令；省略时从 stdin 逐行读取")
    parser.add_argument("-c", "--config", type=Path, help="TOML 配置文件路径")
    parser.add_argument("-p", "--profile", default="default", help="TOML 中的预设名")
    parser.add_argument("--env-file", type=Path, help=".env 文件路径 (默认当前目录)")
    parser.add_argument("-a", "--address", help="服务器地址 host:port")
    parser.add_argument("--password", help="RCON 密码")
    parser.add_argument("--canary", dest="canary_command", help="canary 指令")
    parser.add_argument("--timeout", dest="connect_timeout", type=float, help="连接超时 (秒)")
    parser.add_argument("--read-timeout", type=float, help="读取超时 (秒)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v 输出 INFO，-vv 输出 DEBUG")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_cli_config(args: argparse.Namespace) -> RconConfig:
    """
    为 CLI 工具加载配置。

    先查找 .env 文件并加载到环境变量 (不覆盖已有变量)，
    再依次合并 TOML/环境变量与命令行参数。

    Raises:
        ConfigError: 合并后的配置仍缺少必要字段或格式错误。
    """
    env_path = args.env_file or Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
        logger.debug(f"已加载 .env: {env_path}")
    elif args.env_file:
        raise ConfigError(f".env 文件未找到: {env_path}")

    raw: dict[str, Any]
    if args.config:
        raw = asdict(load_config_from_toml(args.config, args.profile))
    else:
        # 环境变量可以不完整，缺失字段由命令行参数补齐
        raw = read_env_config()
        logger.debug(f"读取到环境变量字段: {sorted(raw)}")

    overrides = {
        key: getattr(args, key)
        for key in ("address", "password", "canary_command", "connect_timeout", "read_timeout")
        if getattr(args, key) is not None
    }
    if "address" in overrides:
        raw.pop("host", None)
        raw.pop("port", None)
    raw.update(overrides)

    return create_config_from_dict(raw)


async def _run(config: RconConfig, command: str) -> int:
    async with RconClient(config) as rcon:
        if command:
            print(await rcon.exec(command))
            return EXIT_OK

        interactive = sys.stdin.isatty()
        while True:
            try:
                line = await asyncio.to_thread(
                    input, f"{config.address}> " if interactive else ""
                )
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue
            if line in ("exit", "quit"):
                break
            print(await rcon.exec(line))

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口点，返回进程退出码。"""
    args = build_parser().parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = load_cli_config(args)
    except ConfigError as ce:
        logger.error(f"配置错误: {ce}")
        return EXIT_CONFIG

    logger.debug(f"配置加载完成: {config!r}")

    try:
        return asyncio.run(_run(config, " ".join(args.command)))
    except AuthError as ae:
        logger.error(f"认证被拒绝: {ae}")
        return EXIT_AUTH
    except RconError as e:
        logger.error(f"运行时异常: {e}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("收到中断信号，退出。")
        return EXIT_ERROR
