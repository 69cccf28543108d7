from reagent.config import Config
from reagent.config_provider import ConfigProvider
from reagent.domain import LifecyclePoint, Msg, ToolResponse
from reagent.engine.agent_base import AgentBase
from reagent.engine.react_agent import ReActAgent
from reagent.engine.toolkit import Toolkit

__all__ = [
    "AgentBase",
    "Config",
    "ConfigProvider",
    "LifecyclePoint",
    "Msg",
    "ReActAgent",
    "ToolResponse",
    "Toolkit",
]
