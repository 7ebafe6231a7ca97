from __future__ import annotations

from pathlib import Path
from zipfile import ZipFile

import pytest
from ebooklib import epub

from bookpages.extraction.archive import ArchiveReader
from bookpages.extraction.models import ArchiveError, FailureKind

_CONTAINER = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">'
    "<rootfiles>"
    '<rootfile full-path="{full_path}" media-type="application/oebps-package+xml"/>'
    "</rootfiles>"
    "</container>"
)


def _opf(items: dict[str, str], spine: list[str]) -> str:
    manifest = "".join(
        f'<item id="{item_id}" href="{href}" media-type="application/xhtml+xml"/>' for item_id, href in items.items()
    )
    itemrefs = "".join(f'<itemref idref="{idref}"/>' for idref in spine)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="id">'
        f"<manifest>{manifest}</manifest>"
        f"<spine>{itemrefs}</spine>"
        "</package>"
    )


def _xhtml(body: str) -> str:
    return f'<html xmlns="http://www.w3.org/1999/xhtml"><head><title>t</title></head><body>{body}</body></html>'


def _write_archive(path: Path, entries: dict[str, str | bytes]) -> Path:
    with ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return path


def _build_epub(path: Path) -> None:
    book = epub.EpubBook()
    book.set_identifier("reader-order")
    book.set_title("Reading Order")
    book.set_language("en")

    chapter_one = epub.EpubHtml(title="Chapter One", file_name="chapter_1.xhtml", lang="en")
    chapter_one.content = "<html><body><h1>Chapter One</h1><p>First chapter text.</p></body></html>"
    chapter_two = epub.EpubHtml(title="Chapter Two", file_name="chapter_2.xhtml", lang="en")
    chapter_two.content = "<html><body><h1>Chapter Two</h1><p>Second chapter text.</p></body></html>"

    book.add_item(chapter_one)
    book.add_item(chapter_two)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())

    book.toc = (chapter_one, chapter_two)
    # Declared order deliberately differs from manifest insertion order.
    book.spine = ["nav", chapter_two, chapter_one]
    epub.write_epub(str(path), book)


def test_reader_follows_declared_spine_order(tmp_path: Path) -> None:
    epub_path = tmp_path / "ordered.epub"
    _build_epub(epub_path)

    result = ArchiveReader().extract(epub_path)

    assert result.ok
    assert len(result.documents) == 3
    assert "<nav" in result.documents[0]
    assert "Second chapter text." in result.documents[1]
    assert "First chapter text." in result.documents[2]


def test_reader_skips_spine_refs_without_manifest_item(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "dangling.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="OEBPS/content.opf"),
            "OEBPS/content.opf": _opf({"c1": "c1.xhtml", "c2": "c2.xhtml"}, ["c1", "ghost", "c2"]),
            "OEBPS/c1.xhtml": _xhtml("<p>one</p>"),
            "OEBPS/c2.xhtml": _xhtml("<p>two</p>"),
        },
    )

    result = ArchiveReader().extract(archive)

    assert result.ok
    assert len(result.documents) == 2
    assert "one" in result.documents[0]
    assert "two" in result.documents[1]
    assert all(document for document in result.documents)


def test_reader_skips_manifest_items_missing_from_zip(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "missing-entry.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="OEBPS/content.opf"),
            "OEBPS/content.opf": _opf({"c1": "c1.xhtml", "c2": "gone.xhtml"}, ["c1", "c2"]),
            "OEBPS/c1.xhtml": _xhtml("<p>one</p>"),
        },
    )

    result = ArchiveReader().extract(archive)

    assert result.ok
    assert len(result.documents) == 1


def test_reader_resolves_hrefs_relative_to_manifest_directory(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "relative.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="OPS/package/content.opf"),
            "OPS/package/content.opf": _opf(
                {"c1": "../text/chapter%20one.xhtml#start", "c2": "local.xhtml"},
                ["c1", "c2"],
            ),
            "OPS/text/chapter one.xhtml": _xhtml("<p>escaped name</p>"),
            "OPS/package/local.xhtml": _xhtml("<p>next to manifest</p>"),
        },
    )

    result = ArchiveReader().extract(archive)

    assert result.ok
    assert "escaped name" in result.documents[0]
    assert "next to manifest" in result.documents[1]


def test_reader_decodes_invalid_utf8_without_failing(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "bytes.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="content.opf"),
            "content.opf": _opf({"c1": "c1.xhtml"}, ["c1"]),
            "c1.xhtml": b"<body><p>caf\xc3\xa9 \xff</p></body>",
        },
    )

    result = ArchiveReader().extract(archive)

    assert result.ok
    assert "café" in result.documents[0]
    assert "�" in result.documents[0]


def test_reader_returns_empty_success_for_empty_spine(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "empty.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="content.opf"),
            "content.opf": _opf({"c1": "c1.xhtml"}, []),
            "c1.xhtml": _xhtml("<p>never referenced</p>"),
        },
    )

    result = ArchiveReader().extract(archive)

    assert result.ok
    assert result.documents == ()


def test_reader_reports_missing_file_as_unreadable(tmp_path: Path) -> None:
    result = ArchiveReader().extract(tmp_path / "nope.epub")

    assert not result.ok
    assert result.failure is not None
    assert result.failure.kind is FailureKind.ARCHIVE_UNREADABLE
    assert result.documents == ()


def test_reader_reports_non_zip_payload_as_unreadable(tmp_path: Path) -> None:
    fake = tmp_path / "fake.epub"
    fake.write_text("definitely not a zip archive", encoding="utf-8")

    result = ArchiveReader().extract(fake)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.ARCHIVE_UNREADABLE


@pytest.mark.parametrize(
    "entries",
    [
        {"mimetype": "application/epub+zip"},
        {"META-INF/container.xml": "<container><rootfiles>"},
        {"META-INF/container.xml": "<container><rootfiles><rootfile/></rootfiles></container>"},
    ],
    ids=["missing", "unparsable", "no-full-path"],
)
def test_reader_reports_bad_container(tmp_path: Path, entries: dict[str, str]) -> None:
    archive = _write_archive(tmp_path / "container.epub", entries)

    result = ArchiveReader().extract(archive)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.CONTAINER_MALFORMED


def test_reader_reports_container_pointing_to_missing_manifest(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "no-manifest.epub",
        {"META-INF/container.xml": _CONTAINER.format(full_path="OEBPS/missing.opf")},
    )

    result = ArchiveReader().extract(archive)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.MANIFEST_MALFORMED
    assert "OEBPS/missing.opf" in result.failure.message


def test_reader_reports_unparsable_manifest(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "bad-manifest.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="content.opf"),
            "content.opf": "<package><manifest>",
        },
    )

    result = ArchiveReader().extract(archive)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.MANIFEST_MALFORMED


def test_read_spine_documents_raises_domain_error(tmp_path: Path) -> None:
    with pytest.raises(ArchiveError) as error_info:
        ArchiveReader().read_spine_documents(tmp_path / "absent.epub")

    assert error_info.value.kind is FailureKind.ARCHIVE_UNREADABLE
    assert "absent.epub" in str(error_info.value)


def _set_compression_method(path: Path, entry: str, method: int) -> None:
    """Rewrite the central directory record of `entry` to claim another compression method."""

    data = bytearray(path.read_bytes())
    name = entry.encode("utf-8")
    offset = data.find(b"PK\x01\x02")
    while offset != -1:
        name_length = int.from_bytes(data[offset + 28 : offset + 30], "little")
        if data[offset + 46 : offset + 46 + name_length] == name:
            data[offset + 10 : offset + 12] = method.to_bytes(2, "little")
        offset = data.find(b"PK\x01\x02", offset + 4)
    path.write_bytes(bytes(data))


def test_reader_reports_unsupported_compression_as_unreadable(tmp_path: Path) -> None:
    archive = _write_archive(
        tmp_path / "method.epub",
        {
            "META-INF/container.xml": _CONTAINER.format(full_path="content.opf"),
            "content.opf": _opf({"c1": "c1.xhtml"}, ["c1"]),
            "c1.xhtml": _xhtml("<p>unreachable</p>"),
        },
    )
    _set_compression_method(archive, "c1.xhtml", 99)

    result = ArchiveReader().extract(archive)

    assert not result.ok
    assert result.failure is not None
    assert result.failure.kind is FailureKind.ARCHIVE_UNREADABLE
    assert "c1.xhtml" in result.failure.message
