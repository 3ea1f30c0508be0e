# -*- coding: utf-8 -*-
"""Define project metadata
"""

__title__ = "hashvault"
__summary__ = "A deduplicating, content-addressed file store."
__url__ = "https://github.com/dgilland/hashvault"

__version__ = "0.1.0"

__install_requires__ = [
    "fs>=2.4.16",
    "SQLAlchemy>=2.0",
    "pydantic-settings>=2.0",
    # fs still imports pkg_resources.
    "setuptools<81",
]
__tests_require__ = ["pytest", "tox"]

__author__ = "Derrick Gilland"
__email__ = "dgilland@gmail.com"

__license__ = "MIT License"
