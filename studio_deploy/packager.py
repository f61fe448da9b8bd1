"""Lambda packaging: zip each deployable unit and publish it to S3.

Every unit ships the same Python packages (``studio_mail`` and
``studio_common``) plus their third-party dependencies; units differ only
in the handler the stack templates point at.  Dependencies are installed
once per build directory with ``pip --target`` for the Lambda platform.

Bundles are built reproducibly (sorted entries, fixed timestamps) so
identical sources hash identically; the content hash is stored as object
metadata while the key itself stays stable so the stack templates can
reference it.
"""

from __future__ import annotations

import abc
import asyncio
import hashlib
import io
import subprocess
import sys
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from .errors import PackagingError
from .storage import ObjectStore

logger = structlog.get_logger()

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_SKIP_NAMES = {"__pycache__", "tests"}
_SKIP_SUFFIXES = {".pyc", ".pyo"}

LAMBDA_PACKAGES: tuple[str, ...] = ("studio_mail", "studio_common")

# boto3 is provided by the Lambda runtime.
LAMBDA_REQUIREMENTS: tuple[str, ...] = (
    "structlog>=24.1",
    "pydantic>=2.5",
    "pydantic-settings>=2.1",
    "httpx>=0.27",
)
LAMBDA_PLATFORM = "manylinux2014_x86_64"


@dataclass(frozen=True)
class LambdaUnit:
    name: str
    handler: str
    packages: tuple[str, ...] = LAMBDA_PACKAGES


LAMBDA_UNITS: tuple[LambdaUnit, ...] = (
    LambdaUnit("contactForm", "studio_mail.contact.handler"),
    LambdaUnit("emailForwarder", "studio_mail.forwarder.handler"),
)


class ArtifactPackager(abc.ABC):
    """Builds deployable units and publishes them where the stacks expect them."""

    @abc.abstractmethod
    async def compile(self, name: str) -> str:
        """Build and publish one unit.  Returns its storage URI."""
        ...

    @abc.abstractmethod
    async def compile_all(self) -> dict[str, str]:
        """Build and publish every unit, keyed by unit name."""
        ...


class ZipArtifactPackager(ArtifactPackager):
    """Package units from *source_dir* and upload them to *bucket*.

    *source_dir* is the directory holding the unit packages.  When
    *dependencies_dir* is given, its contents are added at the bundle root,
    installing ``requirements`` there first if it is empty.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        bucket: str,
        source_dir: Path,
        key_prefix: str = "lambdas",
        units: tuple[LambdaUnit, ...] = LAMBDA_UNITS,
        dependencies_dir: Path | None = None,
        requirements: tuple[str, ...] = LAMBDA_REQUIREMENTS,
        python_version: str = "3.12",
    ) -> None:
        self._store = store
        self._bucket = bucket
        self._source_dir = source_dir
        self._key_prefix = key_prefix.strip("/")
        self._units = {unit.name: unit for unit in units}
        self._dependencies_dir = dependencies_dir
        self._requirements = requirements
        self._python_version = python_version

    def units(self) -> list[str]:
        """Names of the deployable units, in declaration order."""
        return list(self._units)

    async def compile(self, name: str) -> str:
        """Build and publish one unit.  Returns the ``s3://`` URI."""
        unit = self._units.get(name)
        if unit is None:
            raise PackagingError(f"Unknown Lambda unit: {name}")

        await self.ensure_dependencies()
        try:
            payload = build_bundle(self._bundle_files(unit))
        except OSError as exc:
            raise PackagingError(f"Failed to package {name}: {exc}") from exc

        digest = hashlib.sha256(payload).hexdigest()
        key = f"{self._key_prefix}/{name}.zip"
        try:
            uri = await self._store.put_object(
                self._bucket,
                key,
                payload,
                "application/zip",
                metadata={"sha256": digest, "handler": unit.handler},
            )
        except Exception as exc:
            raise PackagingError(f"Failed to publish {name}: {exc}") from exc

        logger.info(
            "lambda_packaged",
            unit=name,
            handler=unit.handler,
            uri=uri,
            sha256=digest[:12],
            size=len(payload),
        )
        return uri

    async def compile_all(self) -> dict[str, str]:
        """Build and publish every unit.  Any failure aborts the whole batch."""
        if not self._units:
            raise PackagingError("No Lambda units configured")
        uris: dict[str, str] = {}
        for name in self._units:
            uris[name] = await self.compile(name)
        return uris

    async def ensure_dependencies(self) -> None:
        """Install third-party requirements unless already present."""
        target = self._dependencies_dir
        if target is None:
            return
        if target.is_dir() and any(target.iterdir()):
            return
        target.mkdir(parents=True, exist_ok=True)
        logger.info(
            "lambda_dependencies_installing",
            target=str(target),
            requirements=list(self._requirements),
        )
        await asyncio.to_thread(
            install_dependencies,
            self._requirements,
            target,
            python_version=self._python_version,
        )

    def _bundle_files(self, unit: LambdaUnit) -> list[tuple[Path, str]]:
        files: list[tuple[Path, str]] = []
        for package in unit.packages:
            directory = self._source_dir / package
            if not directory.is_dir():
                raise PackagingError(f"Lambda package not found: {directory}")
            files.extend(collect_files(directory, prefix=package))
        if self._dependencies_dir is not None:
            files.extend(collect_files(self._dependencies_dir))
        return files


def install_dependencies(
    requirements: Iterable[str],
    target: Path,
    *,
    python_version: str = "3.12",
    platform: str = LAMBDA_PLATFORM,
) -> None:
    """``pip install --target`` wheels built for the Lambda platform."""
    command = [
        sys.executable, "-m", "pip", "install",
        "--quiet",
        "--target", str(target),
        "--platform", platform,
        "--implementation", "cp",
        "--python-version", python_version,
        "--only-binary=:all:",
        *requirements,
    ]
    try:
        result = subprocess.run(command, shell=False, capture_output=True, text=True)
    except OSError as exc:
        raise PackagingError(f"Failed to run pip: {exc}") from exc
    if result.returncode != 0:
        raise PackagingError(f"Dependency install failed: {(result.stderr or result.stdout).strip()}")


def collect_files(root: Path, prefix: str = "") -> list[tuple[Path, str]]:
    """(path, archive name) for every file under *root*, sorted."""
    files = []
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if not path.is_file() or path.suffix in _SKIP_SUFFIXES:
            continue
        if any(part in _SKIP_NAMES for part in relative.parts):
            continue
        arcname = f"{prefix}/{relative.as_posix()}" if prefix else relative.as_posix()
        files.append((path, arcname))
    return files


def build_bundle(files: Iterable[tuple[Path, str]]) -> bytes:
    """Zip (path, archive name) pairs into deterministic bytes."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path, arcname in sorted(files, key=lambda item: item[1]):
            info = zipfile.ZipInfo(arcname, date_time=_ZIP_EPOCH)
            info.external_attr = 0o644 << 16
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, path.read_bytes())
    return buffer.getvalue()
