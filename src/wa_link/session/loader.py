"""Load the configured session connector by import path."""

import importlib

from wa_link.config import Config
from wa_link.errors import ConnectorLoadError
from wa_link.session.connector import SessionConnector

NO_CONNECTOR = "No session connector configured. Set 'connector' in config.toml to a 'module:factory' path."


def load_connector(target: str | None, cfg: Config) -> SessionConnector:
    """Import a connector factory given as ``module:attr`` and build a connector with ``cfg``.

    Raises:
        ConnectorLoadError: No target, malformed target, import failure, missing attribute, or wrong result type.

    """
    if not target:
        raise ConnectorLoadError(NO_CONNECTOR)
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConnectorLoadError(f"Connector must look like 'module:factory', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConnectorLoadError(f"Cannot import connector module {module_name!r}: {e}") from e
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ConnectorLoadError(f"Connector factory {attr!r} not found in {module_name!r}")
    connector = factory(cfg)
    if not isinstance(connector, SessionConnector):
        raise ConnectorLoadError(f"{target!r} did not return a SessionConnector")
    return connector
