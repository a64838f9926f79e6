"""Bindplane on Azure Container Apps - manifest and deploy-script generator.

Renders the Bindplane container-app, job, and secret manifest templates
from one validated configuration record and emits an ordered ``deploy.sh``
that applies them with the ``az`` CLI.
"""

try:
    from importlib.metadata import version

    __version__ = version("bindplane-aca")
except Exception:
    __version__ = "0.0.0.dev0"

__all__ = ["__version__"]
