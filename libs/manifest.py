"""
Build/version manifest for the running service.

Built once at startup and passed to whatever needs to report it; nothing
reads it as process-wide state.
"""

from __future__ import annotations

import os
import platform
from importlib import metadata
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

DISTRIBUTION_NAME: str = "avro-converter"
UNKNOWN: str = "unknown"


class Manifest(BaseModel):
    version: Optional[str] = None
    python_version: Optional[str] = None
    git_repo: Optional[str] = None
    git_commit: Optional[str] = None
    git_tag: Optional[str] = None
    docs_url: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def load(
        cls,
        distribution: str = DISTRIBUTION_NAME,
        env: Optional[Mapping[str, str]] = None,
    ) -> "Manifest":
        """
        Collect the manifest from installed package metadata and the environment.

        Git details are expected from the build (`GIT_REPO`, `GIT_COMMIT`,
        `GIT_TAG`); missing values stay None.
        """
        env = os.environ if env is None else env
        try:
            dist = metadata.metadata(distribution)
            version: Optional[str] = dist["Version"]
            docs_url: Optional[str] = dist.get("Home-page")
        except metadata.PackageNotFoundError:
            version, docs_url = None, None

        return cls(
            version=version,
            python_version=platform.python_version(),
            git_repo=env.get("GIT_REPO"),
            git_commit=env.get("GIT_COMMIT"),
            git_tag=env.get("GIT_TAG"),
            docs_url=env.get("DOCS_URL", docs_url),
        )

    def render(self) -> str:
        rows = [
            ("Version", self.version),
            ("Python-Version", self.python_version),
            ("Git-Repo", self.git_repo),
            ("Git-Commit-Hash", self.git_commit),
            ("Git-Tag", self.git_tag),
            ("Docs", self.docs_url),
        ]
        return "\n".join(f"{f'{label}:':<29}{value or UNKNOWN}" for label, value in rows)
