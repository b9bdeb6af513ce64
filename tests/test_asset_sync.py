import asyncio
from pathlib import Path

import httpx
import pytest

from recitekit.errors import FileFetchError, FilesystemError, ManifestFetchError
from recitekit.services.asset_sync import AssetSynchronizer, SyncProgress
from recitekit.services.manifest import ManifestResolver

TREE = {
    "": [{"type": "file", "path": "a.bin"}, {"type": "directory", "path": "sub"}],
    "sub": [{"type": "file", "path": "sub/b.bin"}],
}
CONTENT = {"a.bin": b"alpha" * 1000, "sub/b.bin": b"bravo"}


class BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b"partial"
        raise httpx.ReadError("connection reset")


def hub_handler(tree=TREE, content=CONTENT, broken=()):
    def handler(request):
        path = request.url.path
        tree_prefix = "/api/models/org/model/tree/main"
        file_prefix = "/org/model/resolve/main/"
        if path.startswith(tree_prefix):
            return httpx.Response(200, json=tree[path[len(tree_prefix):].strip("/")])
        if path.startswith(file_prefix):
            name = path[len(file_prefix):]
            if name in broken:
                return httpx.Response(200, stream=BrokenStream())
            if name not in content:
                return httpx.Response(404)
            return httpx.Response(200, content=content[name])
        raise AssertionError(f"Unexpected request {request.url}")

    return handler


def run_sync(handler, destination: Path, weight: float = 1.0, reports=None):
    reports = [] if reports is None else reports

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            resolver = ManifestResolver(client, endpoint="https://hub.test")
            await AssetSynchronizer(client, resolver).sync(
                "org/model", destination, reports.append, weight
            )

    asyncio.run(scenario())
    return reports


def local_files(root: Path) -> dict[str, bytes]:
    return {
        str(path.relative_to(root)).replace("\\", "/"): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


def test_progress_reported_per_top_level_entry(tmp_path):
    reports = run_sync(hub_handler(), tmp_path / "model", weight=0.7)
    assert [round(r.fraction, 6) for r in reports] == [0.35, 0.7]
    assert [r.completed_units for r in reports] == [1, 2]
    assert all(r.total_units == 2 for r in reports)
    assert local_files(tmp_path / "model") == CONTENT


def test_sync_is_idempotent_over_partial_local_state(tmp_path):
    dest = tmp_path / "model"
    (dest / "sub").mkdir(parents=True)
    (dest / "sub" / "b.bin").write_bytes(b"stale")
    (dest / "a.bin").write_bytes(b"al")

    run_sync(hub_handler(), dest)
    first = local_files(dest)
    run_sync(hub_handler(), dest)
    assert local_files(dest) == first == CONTENT


def test_failed_download_never_truncates_destination(tmp_path):
    dest = tmp_path / "model"
    (dest / "sub").mkdir(parents=True)
    (dest / "sub" / "b.bin").write_bytes(b"previous")

    with pytest.raises(FileFetchError):
        run_sync(hub_handler(broken={"sub/b.bin"}), dest)

    assert (dest / "sub" / "b.bin").read_bytes() == b"previous"
    assert not [p for p in dest.rglob("*.part")]


def test_missing_file_aborts_without_creating_it(tmp_path):
    dest = tmp_path / "model"
    reports: list[SyncProgress] = []
    with pytest.raises(FileFetchError):
        run_sync(hub_handler(content={"sub/b.bin": b"x"}), dest, reports=reports)
    assert reports == []
    assert not (dest / "a.bin").exists()


def test_manifest_failure_surfaces(tmp_path):
    def handler(request):
        return httpx.Response(503)

    with pytest.raises(ManifestFetchError):
        run_sync(handler, tmp_path / "model")


def test_entry_escaping_destination_is_rejected(tmp_path):
    tree = {"": [{"type": "file", "path": "../evil.bin"}]}
    with pytest.raises(FilesystemError):
        run_sync(hub_handler(tree=tree, content={"../evil.bin": b"x"}), tmp_path / "model")
    assert not (tmp_path / "evil.bin").exists()


def test_empty_tree_reports_full_weight(tmp_path):
    reports = run_sync(hub_handler(tree={"": []}), tmp_path / "model", weight=0.7)
    assert len(reports) == 1
    assert reports[0].fraction == pytest.approx(0.7)
    assert (tmp_path / "model").is_dir()


def test_failure_after_marker_leaves_no_files_from_the_run(tmp_path):
    tree = {
        "": [{"type": "file", "path": "model.bin"}, {"type": "directory", "path": "sub"}],
        "sub": [{"type": "file", "path": "sub/vocab.txt"}],
    }
    dest = tmp_path / "model"
    with pytest.raises(FileFetchError):
        run_sync(hub_handler(tree=tree, content={"model.bin": b"weights"}), dest)

    assert not dest.exists()
    assert list(tmp_path.iterdir()) == []


def test_successful_sync_replaces_previous_tree(tmp_path):
    dest = tmp_path / "model"
    dest.mkdir()
    (dest / "orphan.bin").write_bytes(b"old")

    run_sync(hub_handler(), dest)

    assert local_files(dest) == CONTENT
    assert sorted(p.name for p in tmp_path.iterdir()) == ["model"]
