"""
Exception types raised by the Player Agent core.
"""


class PlayerAgentError(Exception):
    """Base exception for the Player Agent core."""
    pass


class SettingCatalogError(PlayerAgentError):
    """The bundled settings catalog is missing or malformed."""
    pass


class SchemaImportError(PlayerAgentError):
    """An imported schema document could not be parsed."""
    pass
