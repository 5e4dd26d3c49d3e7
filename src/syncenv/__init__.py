"""
syncenv -- version-controlled environment files.

Tag your .env files with the current Git tag or branch, push them to
an object store (S3, Azure Blob, GCS, or a plain directory), and pull
them back for any version. Encrypted at rest with AES-256-GCM.
"""

import os

__version__ = "0.1.0"

CONFIG_FILE = os.environ.get("SYNCENV_CONFIG", ".syncenv.yml")
