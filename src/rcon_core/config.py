"""
RCON 核心库 - 配置模块

负责配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量或字典中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 27015


@dataclass(frozen=True)
class RconConfig:
    """RconClient 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        host: RCON 服务器主机名或 IP 地址。
        port: RCON 服务器端口 (Source 默认 27015)。
        password: RCON 密码。
        canary_command: 每条指令之后追加发送的无副作用指令，用于标记响应结束。
            为 None 时使用空的 RESPONSE_VALUE 包作为 canary。
        connect_timeout: 建立 TCP 连接的超时秒数，None 表示使用系统默认。
        read_timeout: 单次读取的超时秒数，None 表示无限等待。
    """

    host: str
    port: int
    password: str
    canary_command: str | None = None
    connect_timeout: float | None = None
    read_timeout: float | None = None

    @property
    def address(self) -> str:
        """`host:port` 形式的地址 (IPv6 带方括号)。"""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def __repr__(self) -> str:
        """
        覆盖默认的 repr，隐藏密码字段，防止日志泄露敏感信息。
        """
        return (
            f"<{self.__class__.__name__} "
            f"server={self.address}, "
            f"password='******', "
            f"canary={self.canary_command!r}, "
            f"connect_timeout={self.connect_timeout}, "
            f"read_timeout={self.read_timeout}>"
        )


def parse_address(address: str | tuple[str, int], default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """解析服务器地址。

    支持的格式:
    - `"127.0.0.1:27015"` / `"example.com:27015"`
    - `"[::1]:27015"` (IPv6)
    - `"127.0.0.1"` (使用默认端口)
    - `("127.0.0.1", 27015)`

    Args:
        address: 地址字符串或 (host, port) 元组。
        default_port: 未指定端口时使用的端口。

    Returns:
        tuple[str, int]: (host, port)。

    Raises:
        ConfigError: 地址格式无效或端口超出范围。
    """
    if isinstance(address, tuple):
        if len(address) != 2:
            raise ConfigError(f"地址元组格式无效: {address!r}")
        host, port = str(address[0]), _to_port(address[1])
    else:
        text = str(address).strip()
        if not text:
            raise ConfigError("地址为空")

        if text.startswith("["):
            # [v6]:port
            end = text.find("]")
            if end == -1:
                raise ConfigError(f"IPv6 地址缺少 ']': {text}")
            host = text[1:end]
            rest = text[end + 1 :]
            if not rest:
                port = default_port
            elif rest.startswith(":"):
                port = _to_port(rest[1:])
            else:
                raise ConfigError(f"地址格式无效: {text}")
        elif text.count(":") == 1:
            host, _, port_text = text.partition(":")
            port = _to_port(port_text)
        elif text.count(":") > 1:
            # 裸 IPv6，无端口
            host, port = text, default_port
        else:
            host, port = text, default_port

    if not host:
        raise ConfigError(f"地址缺少主机部分: {address!r}")
    return host, port


def _to_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"端口格式无效: {value!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"端口超出范围: {port}")
    return port


def _to_timeout(key: str, value: Any) -> float | None:
    """将超时配置转换为正数秒，空值视为 None。"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"超时格式无效 '{key}': {value!r}")
    if seconds <= 0:
        raise ConfigError(f"超时必须为正数 '{key}': {value!r}")
    return seconds


def create_config_from_dict(raw_data: dict[str, Any]) -> RconConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。
    地址可以通过 `address` 一次给出，也可以拆分为 `host` / `port`。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        RconConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    try:
        if "password" not in raw_data:
            raise ConfigError("配置缺失: 缺少必要字段 'password'")

        if raw_data.get("address"):
            host, port = parse_address(raw_data["address"])
            if raw_data.get("port") not in (None, ""):
                port = _to_port(raw_data["port"])
        elif raw_data.get("host"):
            host = str(raw_data["host"])
            port = _to_port(raw_data.get("port") or DEFAULT_PORT)
        else:
            raise ConfigError("配置缺失: 需要 'address' 或 'host'")

        canary = raw_data.get("canary_command")
        if canary is not None:
            canary = str(canary)
            if not canary:
                canary = None

        return RconConfig(
            host=host,
            port=port,
            password=str(raw_data["password"]),
            canary_command=canary,
            connect_timeout=_to_timeout("connect_timeout", raw_data.get("connect_timeout")),
            read_timeout=_to_timeout("read_timeout", raw_data.get("read_timeout")),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> RconConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [rcon]: 单服务器配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        RconConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]

    elif "rcon" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [rcon] 节，忽略 profile='{profile}'。")
        raw_config = data["rcon"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


# 字段映射表 (Config Field -> Env Suffix)
ENV_MAP = {
    "address": "ADDRESS",
    "host": "HOST",
    "port": "PORT",
    "password": "PASSWORD",
    "canary_command": "CANARY_COMMAND",
    "connect_timeout": "CONNECT_TIMEOUT",
    "read_timeout": "READ_TIMEOUT",
}


def read_env_config() -> dict[str, str]:
    """收集 `RCON_` 前缀的环境变量，不做任何校验。

    例如: `RCON_PASSWORD` -> `password`。未设置的变量不会出现在结果中，
    调用方可以先补齐缺失字段再交给 create_config_from_dict。
    """
    raw_data = {}
    for cfg_key, env_suffix in ENV_MAP.items():
        val = os.environ.get(f"RCON_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val
    return raw_data


def load_config_from_env() -> RconConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    Returns:
        RconConfig: 配置对象。

    Raises:
        ConfigError: 未检测到任何相关环境变量，或字段校验失败。
    """
    raw_data = read_env_config()
    if not raw_data:
        raise ConfigError("未检测到 RCON_ 前缀的环境变量")

    return create_config_from_dict(raw_data)
