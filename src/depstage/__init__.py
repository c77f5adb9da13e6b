"""depstage - runtime resolution, verification and staging of Maven artifacts."""
from depstage.coordinates import Coordinate
from depstage.manager import DependencyManager, DependencyState, OutcomeStatus, ResolutionOutcome, ResolvedArtifact
from depstage.relocation import Relocation
from depstage.repository import jitpack, maven, maven_central, minecraft, paper
from depstage.transitive import MavenScope, TransitiveResolver

__version__ = "1.0.0"

__all__ = [
    "Coordinate",
    "DependencyManager",
    "DependencyState",
    "MavenScope",
    "OutcomeStatus",
    "Relocation",
    "ResolutionOutcome",
    "ResolvedArtifact",
    "TransitiveResolver",
    "jitpack",
    "maven",
    "maven_central",
    "minecraft",
    "paper",
]
