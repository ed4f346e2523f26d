import os

# Keep the developer's environment from leaking into settings-driven tests
for _name in list(os.environ):
    if _name.startswith("MESHSTACK_"):
        del os.environ[_name]

from tests.fixtures import *  # noqa: E402,F401,F403
