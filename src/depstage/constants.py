"""Constants used in the project."""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MAVEN_CENTRAL_URL = "https://repo1.maven.org/maven2/"
    JITPACK_URL = "https://jitpack.io/"
    MINECRAFT_URL = "https://libraries.minecraft.net/"
    PAPER_URL = "https://papermc.io/repo/repository/maven-public/"

    CONNECT_TIMEOUT = 5  # seconds
    READ_TIMEOUT = 10  # seconds
    DOWNLOAD_CHUNK_SIZE = 8 * 1024
    USER_AGENT = "depstage/1.0"

    SNAPSHOT_SUFFIX = "SNAPSHOT"
    METADATA_FILE = "maven-metadata.xml"
    JAR_EXTENSION = "jar"
    POM_EXTENSION = "pom"
    CHECKSUM_EXTENSION = "sha1"
    RELOCATED_SUFFIX = "-relocated"

    REPOSITORIES_FILE = "repositories.txt"
    DEPENDENCIES_FILE = "dependencies.txt"
    RELOCATIONS_FILE = "relocations.txt"
    PROPERTIES_FILE = "depstage.properties"
    DEFAULT_LIBS_FOLDER = "libs"

    TRANSITIVE_MAX_DEPTH = 32
    TRANSITIVE_MAX_NODES = 2048

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "DEPSTAGE_LOG_LEVEL"


# Tunables a YAML settings file is allowed to override, with their coercions.
_OVERRIDABLE = {
    "maven_central_url": ("MAVEN_CENTRAL_URL", str),
    "connect_timeout": ("CONNECT_TIMEOUT", float),
    "read_timeout": ("READ_TIMEOUT", float),
    "download_chunk_size": ("DOWNLOAD_CHUNK_SIZE", int),
    "user_agent": ("USER_AGENT", str),
    "default_libs_folder": ("DEFAULT_LIBS_FOLDER", str),
    "transitive_max_depth": ("TRANSITIVE_MAX_DEPTH", int),
    "transitive_max_nodes": ("TRANSITIVE_MAX_NODES", int),
}


def load_yaml_overrides(path):
    """Apply tunable overrides from a YAML settings file onto Constants.

    Args:
        path (str): Path to a YAML mapping of lower-case tunable names to values.

    Returns:
        dict: The overrides that were applied, keyed by attribute name.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    with open(path, encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")

    applied = {}
    for key, value in data.items():
        entry = _OVERRIDABLE.get(str(key).lower())
        if entry is None:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
            continue
        attr, coerce = entry
        setattr(Constants, attr, coerce(value))
        applied[attr] = getattr(Constants, attr)
    return applied
