"""Report serializers."""

from .sarif import SARIF_SCHEMA, SARIF_VERSION, build_sarif

__all__ = ["SARIF_SCHEMA", "SARIF_VERSION", "build_sarif"]
