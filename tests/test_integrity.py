import pytest
from conftest import MANIFEST_XML

from manifest_fetcher.downloads import ManifestIntegrityChecker
from manifest_fetcher.exceptions import ManifestIntegrityError


def test_summarises_manifest():
    summary = ManifestIntegrityChecker.parse(MANIFEST_XML)

    assert summary.metadata_types == 2
    assert summary.members == 3
    assert summary.api_version == "62.0"


def test_manifest_without_namespace_or_version():
    summary = ManifestIntegrityChecker.parse(b"<Package><types/></Package>")

    assert summary.metadata_types == 1
    assert summary.members == 0
    assert summary.api_version is None


@pytest.mark.parametrize(
    "content, message",
    [
        (b"", "empty"),
        (b"   \n", "empty"),
        (b"<Package><types>", "not valid XML"),
        (b"<html><body>Login</body></html>", "<Package>"),
    ],
)
def test_rejects_non_manifests(content, message):
    with pytest.raises(ManifestIntegrityError, match=message):
        ManifestIntegrityChecker.parse(content)


async def test_check_manifest_reads_file(tmp_path):
    path = tmp_path / "package.xml"
    path.write_bytes(MANIFEST_XML)

    summary = await ManifestIntegrityChecker.check_manifest(path)

    assert summary.members == 3


async def test_check_manifest_of_missing_file(tmp_path):
    with pytest.raises(ManifestIntegrityError, match="Could not read"):
        await ManifestIntegrityChecker.check_manifest(tmp_path / "package.xml")
