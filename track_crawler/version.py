"""Central versioning and schema constants for the track crawler."""

__all__ = ["__version__", "CONFIG_SCHEMA_VERSION"]

#: Semantic version of this codebase (bump using SemVer).
__version__ = "0.1.0"

#: Configuration schema version (increment on breaking config changes).
CONFIG_SCHEMA_VERSION = 1
