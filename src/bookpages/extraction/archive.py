"""EPUB archive reader returning spine documents in reading order."""

from __future__ import annotations

import logging
import posixpath
import zlib
from pathlib import Path
from urllib.parse import unquote
from zipfile import BadZipFile, ZipFile

from lxml import etree

from bookpages.extraction.models import (
    ArchiveError,
    ExtractionFailure,
    ExtractionResult,
    FailureKind,
    PackageManifest,
)

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"

# Member reads can fail outside BadZipFile, e.g. NotImplementedError for an unknown compression method.
_OPEN_ERRORS = (BadZipFile, OSError, ValueError)
_READ_ERRORS = (BadZipFile, zlib.error, OSError, EOFError, RuntimeError, NotImplementedError, ValueError)


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)


def _parse_xml(payload: bytes, *, kind: FailureKind, path: str, entry: str) -> etree._Element:
    try:
        return etree.fromstring(payload, parser=_xml_parser())
    except etree.XMLSyntaxError as exc:
        raise ArchiveError(kind, path, f"{entry} is not well-formed XML: {exc}") from exc


def _read_entry(archive: ZipFile, name: str, *, path: str) -> bytes | None:
    try:
        return archive.read(name)
    except KeyError:
        return None
    except _READ_ERRORS as exc:
        raise ArchiveError(FailureKind.ARCHIVE_UNREADABLE, path, f"Corrupt archive entry {name}: {exc}") from exc


def _resolve_href(base_dir: str, href: str) -> str:
    target = unquote(href.split("#", 1)[0])
    return posixpath.normpath(posixpath.join(base_dir, target))


class ArchiveReader:
    """Open an EPUB, follow container and manifest, and yield spine markup.

    The reader keeps no state between calls; every call opens and closes its
    own archive handle.
    """

    def extract(self, path: str | Path) -> ExtractionResult:
        """Return spine documents in order, or a typed failure."""

        try:
            documents = self.read_spine_documents(path)
        except ArchiveError as error:
            logger.warning("Archive extraction failed: %s", error)
            return ExtractionResult.failed(ExtractionFailure.from_error(error))
        return ExtractionResult.success(documents)

    def read_spine_documents(self, path: str | Path) -> list[str]:
        source = str(path)
        try:
            archive = ZipFile(source, "r")
        except _OPEN_ERRORS as exc:
            raise ArchiveError(FailureKind.ARCHIVE_UNREADABLE, source, f"Cannot open archive: {exc}") from exc

        with archive:
            package = self.read_package(archive, path=source)
            documents: list[str] = []

            for idref in package.spine:
                href = package.items.get(idref)
                if href is None:
                    logger.debug("Skipping spine reference without manifest item: %s", idref)
                    continue

                entry = _resolve_href(package.base_dir, href)
                payload = _read_entry(archive, entry, path=source)
                if payload is None:
                    logger.warning("Manifest item %s points to missing entry %s in %s", idref, entry, source)
                    continue

                documents.append(payload.decode("utf-8", errors="replace"))

        logger.debug("Read %d of %d spine documents from %s", len(documents), len(package.spine), source)
        return documents

    def read_package(self, archive: ZipFile, *, path: str) -> PackageManifest:
        """Resolve container descriptor and manifest into a `PackageManifest`."""

        manifest_path = self._manifest_path(archive, path=path)

        payload = _read_entry(archive, manifest_path, path=path)
        if payload is None:
            raise ArchiveError(FailureKind.MANIFEST_MALFORMED, path, f"Manifest entry {manifest_path} is missing")
        root = _parse_xml(payload, kind=FailureKind.MANIFEST_MALFORMED, path=path, entry=manifest_path)

        items: dict[str, str] = {}
        for item in root.xpath("//*[local-name()='manifest']/*[local-name()='item']"):
            item_id = item.get("id")
            href = item.get("href")
            if item_id and href:
                items[item_id] = href

        spine = tuple(
            str(idref)
            for idref in root.xpath("//*[local-name()='spine']/*[local-name()='itemref']/@idref")
            if str(idref)
        )
        return PackageManifest(manifest_path=manifest_path, items=items, spine=spine)

    def _manifest_path(self, archive: ZipFile, *, path: str) -> str:
        payload = _read_entry(archive, CONTAINER_PATH, path=path)
        if payload is None:
            raise ArchiveError(FailureKind.CONTAINER_MALFORMED, path, f"{CONTAINER_PATH} is missing")
        root = _parse_xml(payload, kind=FailureKind.CONTAINER_MALFORMED, path=path, entry=CONTAINER_PATH)

        rootfiles = root.xpath("//*[local-name()='rootfile']")
        full_path = rootfiles[0].get("full-path", "").strip() if rootfiles else ""
        if not full_path:
            raise ArchiveError(FailureKind.CONTAINER_MALFORMED, path, "No rootfile full-path in container descriptor")
        return full_path
