"""Repositories and the well-known public instances."""
from depstage.constants import Constants
from depstage.repository.base import Repository
from depstage.repository.maven import MavenRepository


def maven(url: str) -> MavenRepository:
    """Return a Maven-layout repository rooted at ``url``."""
    return MavenRepository(url)


def maven_central() -> MavenRepository:
    return MavenRepository(Constants.MAVEN_CENTRAL_URL)


def jitpack() -> MavenRepository:
    return MavenRepository(Constants.JITPACK_URL)


def minecraft() -> MavenRepository:
    return MavenRepository(Constants.MINECRAFT_URL)


def paper() -> MavenRepository:
    return MavenRepository(Constants.PAPER_URL)


__all__ = ["Repository", "MavenRepository", "maven", "maven_central", "jitpack", "minecraft", "paper"]
