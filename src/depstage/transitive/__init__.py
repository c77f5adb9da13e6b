"""Transitive dependency discovery."""
from depstage.transitive.pom import DeclaredDependency, Descriptor, parse_descriptor
from depstage.transitive.resolver import TransitiveResolver, TransitiveResolverBuilder
from depstage.transitive.scope import MavenScope

__all__ = [
    "DeclaredDependency",
    "Descriptor",
    "MavenScope",
    "TransitiveResolver",
    "TransitiveResolverBuilder",
    "parse_descriptor",
]
