"""
SKConfigure — pinned, encrypted project secrets.

Secrets live in their own git repository. A project pins one commit of
that repository, keeps encrypted copies of the files it needs, and
decrypts them on demand. Update re-pins and re-encrypts; apply decrypts.

A smilinTux Open Source Project.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

SKCONFIGURE_HOME = os.environ.get("SKCONFIGURE_HOME", "~/.skconfigure")
CONFIG_FILENAME = ".configure"
