"""
Adaptor registry for selecting a provider adaptor by channel type.
"""

import logging
from typing import Dict, List, Optional, Type, Union

from .config import ChannelConfig, ChannelType
from .errors import AdaptorNotFoundError
from .interface import AbstractChannelAdaptor, AbstractTaskAdaptor

logger = logging.getLogger(__name__)


class AdaptorRegistry:
    """
    Registry of adaptor classes.

    Holds classes only. Every ``create_*`` call builds a new adaptor, so no
    instance is ever shared between concurrent requests.
    """

    def __init__(self):
        """Initialize the registry."""
        self._adaptors: Dict[ChannelType, Type[AbstractChannelAdaptor]] = {}
        self._task_adaptors: Dict[ChannelType, Type[AbstractTaskAdaptor]] = {}

    def register_adaptor(
        self,
        channel_type: ChannelType,
        adaptor_class: Type[AbstractChannelAdaptor],
    ) -> None:
        """
        Register a synchronous adaptor class.

        Args:
            channel_type: Channel type served by the adaptor
            adaptor_class: Adaptor class to register
        """
        self._adaptors[channel_type] = adaptor_class
        logger.info(f"Registered channel adaptor: {channel_type.name} -> {adaptor_class.__name__}")

    def register_task_adaptor(
        self,
        channel_type: ChannelType,
        adaptor_class: Type[AbstractTaskAdaptor],
    ) -> None:
        """
        Register an asynchronous job adaptor class.

        Args:
            channel_type: Channel type served by the adaptor
            adaptor_class: Adaptor class to register
        """
        self._task_adaptors[channel_type] = adaptor_class
        logger.info(f"Registered task adaptor: {channel_type.name} -> {adaptor_class.__name__}")

    def create_adaptor(self, config: ChannelConfig, **kwargs) -> AbstractChannelAdaptor:
        """
        Build a fresh adaptor for one call.

        Raises:
            AdaptorNotFoundError: If no adaptor serves the channel type
        """
        adaptor_class = self._adaptors.get(config.channel_type)
        if adaptor_class is None:
            raise AdaptorNotFoundError(f"Unknown channel type: {config.channel_type!r}")
        return adaptor_class(config, **kwargs)

    def create_task_adaptor(self, config: ChannelConfig, **kwargs) -> AbstractTaskAdaptor:
        """
        Build a fresh job adaptor for one submit or poll.

        Raises:
            AdaptorNotFoundError: If no job adaptor serves the channel type
        """
        adaptor_class = self._task_adaptors.get(config.channel_type)
        if adaptor_class is None:
            raise AdaptorNotFoundError(f"No task adaptor for channel type: {config.channel_type!r}")
        return adaptor_class(config, **kwargs)

    def list_adaptors(self) -> List[Dict[str, Union[str, bool]]]:
        """
        List registered adaptor classes.

        Returns:
            List of adaptor info dicts
        """
        entries = []
        for channel_type, cls in self._adaptors.items():
            entries.append({"channel_type": channel_type.name, "adaptor": cls.__name__, "task": False})
        for channel_type, cls in self._task_adaptors.items():
            entries.append({"channel_type": channel_type.name, "adaptor": cls.__name__, "task": True})
        return entries


# Global registry instance
_registry: Optional[AdaptorRegistry] = None


def get_registry() -> AdaptorRegistry:
    """Get the global adaptor registry with built-in adaptors registered."""
    global _registry
    if _registry is None:
        from ..adapters import register_builtin_adaptors

        _registry = AdaptorRegistry()
        register_builtin_adaptors(_registry)
    return _registry
