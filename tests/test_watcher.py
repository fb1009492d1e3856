import asyncio
import time

import pytest
from conftest import MANIFEST_XML

from manifest_fetcher.downloads import (
    is_download_complete,
    list_entries,
    reset_download_dir,
    wait_for_download,
)
from manifest_fetcher.exceptions import ConfigurationError, DownloadTimeoutError


@pytest.mark.parametrize(
    "entries, expected",
    [
        ([], False),
        (["package.xml"], True),
        (["package.xml", "notes.txt"], True),
        (["package.xml", "other.zip.crdownload"], False),
        (["package.xml.crdownload"], False),
        (["package (1).xml"], False),
    ],
)
def test_completion_requires_file_and_no_partials(entries, expected):
    assert is_download_complete(entries, "package.xml", ".crdownload") is expected


async def test_reset_creates_missing_directory(tmp_path):
    target = tmp_path / "nested" / "downloads"

    assert await reset_download_dir(target) == 0
    assert target.is_dir()


async def test_reset_removes_files_and_is_idempotent(tmp_path):
    (tmp_path / "package.xml").write_text("old")
    (tmp_path / "package.xml.crdownload").write_text("partial")

    assert await reset_download_dir(tmp_path) == 2
    assert await list_entries(tmp_path) == []
    assert await reset_download_dir(tmp_path) == 0


async def test_reset_leaves_subdirectories(tmp_path):
    (tmp_path / "keep").mkdir()
    (tmp_path / "package.xml").write_text("old")

    assert await reset_download_dir(tmp_path) == 1
    assert await list_entries(tmp_path) == ["keep"]


async def test_reset_rejects_a_file_in_place_of_the_directory(tmp_path):
    target = tmp_path / "downloads"
    target.write_text("not a dir")

    with pytest.raises(ConfigurationError, match="downloads"):
        await reset_download_dir(target)

    assert target.read_text() == "not a dir"


async def test_list_entries_of_missing_directory_is_empty(tmp_path):
    assert await list_entries(tmp_path / "absent") == []


async def test_returns_immediately_when_already_complete(tmp_path):
    (tmp_path / "package.xml").write_bytes(MANIFEST_XML)

    start = time.monotonic()
    path = await wait_for_download(
        tmp_path, "package.xml", ".crdownload", timeout=5, poll_interval=1
    )

    assert path == tmp_path / "package.xml"
    assert time.monotonic() - start < 0.5


async def test_waits_for_in_progress_file_to_be_renamed(tmp_path):
    partial = tmp_path / "package.xml.crdownload"
    partial.write_bytes(MANIFEST_XML[:10])

    async def finish_later():
        await asyncio.sleep(0.1)
        partial.rename(tmp_path / "package.xml")

    task = asyncio.create_task(finish_later())
    path = await wait_for_download(
        tmp_path, "package.xml", ".crdownload", timeout=2, poll_interval=0.02
    )
    await task

    assert path.name == "package.xml"
    assert not partial.exists()


async def test_partial_alongside_finished_file_keeps_waiting(tmp_path):
    (tmp_path / "package.xml").write_bytes(MANIFEST_XML)
    (tmp_path / "other.crdownload").write_bytes(b"x")

    with pytest.raises(DownloadTimeoutError, match="other.crdownload"):
        await wait_for_download(
            tmp_path, "package.xml", ".crdownload", timeout=0.2, poll_interval=0.05
        )


async def test_timeout_is_not_raised_before_deadline(tmp_path):
    start = time.monotonic()
    with pytest.raises(DownloadTimeoutError, match="within 0.3s"):
        await wait_for_download(
            tmp_path, "package.xml", ".crdownload", timeout=0.3, poll_interval=0.1
        )

    assert time.monotonic() - start >= 0.3


async def test_missing_directory_times_out_instead_of_crashing(tmp_path):
    with pytest.raises(DownloadTimeoutError):
        await wait_for_download(
            tmp_path / "absent", "package.xml", ".crdownload", timeout=0.1, poll_interval=0.05
        )
