# src/rcon_core/__init__.py
"""
rcon-core v1.0.0
基于 asyncio 的 Source RCON 客户端核心库。
"""

# 暴露核心配置
from .config import (
    RconConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
    parse_address,
    read_env_config,
)

# 暴露客户端与状态
from .client import RconClient

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    AuthError,
    ConfigError,
    MalformedPacketError,
    NetworkError,
    NotConnectedError,
    ProtocolError,
    RconError,
    StateError,
)
from .network import ReceiveTimeout
from .protocols import Packet, PacketKind
from .state import RconState, SessionStatus

__version__ = "1.0.0"

__all__ = [
    "RconClient",
    "RconConfig",
    "RconState",
    "SessionStatus",
    "Packet",
    "PacketKind",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "parse_address",
    "read_env_config",
    "RconError",
    "ConfigError",
    "NetworkError",
    "ReceiveTimeout",
    "AuthError",
    "ProtocolError",
    "MalformedPacketError",
    "StateError",
    "NotConnectedError",
]
