"""infracanvas: infrastructure canvas graphs to Terraform, run in a sandbox."""

from infracanvas.domain.artifact import generate
from infracanvas.domain.plan import interpret_plan
from infracanvas.infrastructure.executor import execute

__version__ = "0.1.0"

__all__ = ["__version__", "execute", "generate", "interpret_plan"]
