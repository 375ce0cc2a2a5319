"""Clone GitOps profiles, write their Flux resources, and summarise installations."""

__version__ = "0.1.0"