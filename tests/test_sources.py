"""Tests for media aggregation."""

import pytest

from rankeffect.errors import ListingFault
from rankeffect.models import MediaItem
from rankeffect.sources import MediaAggregator, scan_media_dir


class TestMediaAggregator:
    @pytest.mark.asyncio
    async def test_remote_first_then_local(self, make_lister, remote_items, local_files):
        aggregator = MediaAggregator(remote=make_lister(remote_items), local_files=local_files)
        media = await aggregator.aggregate()
        assert [m.filename for m in media] == ["A.jpg", "B.mp4", "C.jpeg", "D.mov"]

    @pytest.mark.asyncio
    async def test_order_is_stable(self, make_lister, remote_items, local_files):
        aggregator = MediaAggregator(remote=make_lister(remote_items), local_files=local_files)
        assert await aggregator.aggregate() == await aggregator.aggregate()

    @pytest.mark.asyncio
    async def test_no_deduplication(self, make_lister):
        aggregator = MediaAggregator(
            remote=make_lister([MediaItem("same.jpg", id="1")]),
            local_files=["same.jpg"],
        )
        media = await aggregator.aggregate()
        assert [m.filename for m in media] == ["same.jpg", "same.jpg"]
        assert media[0].is_remote and not media[1].is_remote

    @pytest.mark.asyncio
    async def test_local_items_have_no_remote_fields(self, local_files):
        media = MediaAggregator(local_files=local_files).list_local_media()
        assert all(m.id is None and m.url is None for m in media)

    @pytest.mark.asyncio
    async def test_without_remote_lister(self, local_files):
        aggregator = MediaAggregator(local_files=local_files)
        assert await aggregator.list_remote_media() == []
        assert len(await aggregator.aggregate()) == 2

    @pytest.mark.asyncio
    async def test_listing_fault_propagates(self, make_lister, local_files):
        aggregator = MediaAggregator(
            remote=make_lister(error=ListingFault("timed out")), local_files=local_files
        )
        with pytest.raises(ListingFault, match="timed out"):
            await aggregator.aggregate()

    def test_scans_media_dir_when_no_files_listed(self, tmp_path):
        for name in ["b.mp4", "a.JPEG", "notes.txt", "c.heic"]:
            (tmp_path / name).write_bytes(b"x")
        (tmp_path / "sub.jpg").mkdir()

        media = MediaAggregator(media_dir=tmp_path).list_local_media()
        assert [m.filename for m in media] == ["a.JPEG", "b.mp4", "c.heic"]

    def test_configured_files_win_over_scan(self, tmp_path):
        (tmp_path / "a.jpg").write_bytes(b"x")
        media = MediaAggregator(local_files=["z.jpg"], media_dir=tmp_path).list_local_media()
        assert [m.filename for m in media] == ["z.jpg"]

    def test_missing_media_dir(self, tmp_path):
        assert scan_media_dir(tmp_path / "nope") == []
