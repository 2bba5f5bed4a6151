"""Security scanning and cluster bootstrap tooling for Terraform/EKS repositories."""

__version__ = "0.1.0"

__all__ = ["__version__"]
