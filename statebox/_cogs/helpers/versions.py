"""
The library's own version, as installed.

The version is not written in the code: it is derived from the git tags
at build time by ``setuptools_scm`` (see ``setup.py``), and is read back
from the installed distribution's metadata once, when imported.
A source checkout which is not installed has no version at all.
"""
import importlib.metadata
from typing import Optional

DISTRIBUTION = __name__.split('.')[0]  # usually "statebox", unless renamed/forked.


def detect_version(distribution: str = DISTRIBUTION) -> Optional[str]:
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        return None


version: Optional[str] = detect_version()
