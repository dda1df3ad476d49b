#!/usr/bin/env python3
"""
Print the image tag for the shared Lambda container.

The tag is a timestamp plus a digest of everything that goes into the image,
so Pulumi and the image build agree on which tag to push and deploy.
"""

import hashlib
import os
from datetime import datetime

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

IMAGE_FILES = ["Dockerfile", "pyproject.toml", "main.py", "authorizer.py"]
IMAGE_PACKAGES = ["client", "handlers", "models", "services", "utils"]


def iter_image_sources(root=PROJECT_ROOT):
    """Yield the files baked into the image, in a stable order."""
    for name in IMAGE_FILES:
        path = os.path.join(root, name)
        if os.path.isfile(path):
            yield path

    for package in IMAGE_PACKAGES:
        package_dir = os.path.join(root, package)
        for subdir, dirs, files in os.walk(package_dir):
            dirs.sort()
            for file in sorted(files):
                if file.endswith(".py"):
                    yield os.path.join(subdir, file)


def get_content_hash(root=PROJECT_ROOT):
    digest = hashlib.sha256()
    for path in iter_image_sources(root):
        digest.update(os.path.relpath(path, root).encode())
        with open(path, "rb") as f:
            digest.update(f.read())

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"{timestamp}-{digest.hexdigest()[:12]}"


if __name__ == "__main__":
    print(get_content_hash())
