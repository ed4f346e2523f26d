"""CLI commands.

Each reconciling command builds a plan for one operation:

- install: non-destructive install/upgrade of declared components
- update: destructive convergence (--check / --apply)
- destroy: removal of one or all components
- plan: the plan any of the above would execute
- status: lock records and the three-way comparison
- validate: configuration and cluster checks
"""

from .destroy import destroy
from .install import install
from .plan import plan
from .status import status
from .update import update
from .validate import validate

__all__ = [
    "install",
    "update",
    "destroy",
    "status",
    "plan",
    "validate",
]
