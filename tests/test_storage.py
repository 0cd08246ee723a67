import pytest

from cyphire.storage import BlobStoreError, IncomingFile, LocalBlobStore


@pytest.mark.asyncio
async def test_local_store_writes_file(tmp_path):
    store = LocalBlobStore(tmp_path, "/blobs/")
    blob = await store.upload(
        IncomingFile(name="mock.png", content_type="image/png", data=b"\x89PNG"),
        "cyphire/workrooms/wr_tk_1_us_2",
    )

    assert blob.id.startswith("bl_")
    assert blob.url == f"/blobs/cyphire/workrooms/wr_tk_1_us_2/{blob.id}.png"
    assert blob.size == 4
    assert blob.name == "mock.png"
    written = tmp_path / "cyphire" / "workrooms" / "wr_tk_1_us_2" / f"{blob.id}.png"
    assert written.read_bytes() == b"\x89PNG"


@pytest.mark.asyncio
async def test_local_store_failure(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    store = LocalBlobStore(blocker, "/blobs")

    with pytest.raises(BlobStoreError):
        await store.upload(
            IncomingFile(name="a.txt", content_type="text/plain", data=b"hi"), "folder"
        )


@pytest.mark.asyncio
async def test_local_store_delete(tmp_path):
    store = LocalBlobStore(tmp_path, "/blobs")
    blob = await store.upload(
        IncomingFile(name="a.txt", content_type="text/plain", data=b"hi"), "folder"
    )
    assert (tmp_path / blob.key).exists()

    await store.delete(blob)
    assert not (tmp_path / blob.key).exists()
    await store.delete(blob)
