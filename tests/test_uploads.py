import asyncio

import pytest
from conftest import make_engine, select

from berry_editor.editor import AttachmentUploader, UploadFile, UploadResult


def png(name: str) -> UploadFile:
    return UploadFile(name=name, size=10, content_type="image/png")


class DelayedAdapter:
    """Finishes uploads after per-file delays, reporting progress first."""

    def __init__(self, delays: dict[str, float], engine=None):
        self.delays = delays
        self.engine = engine
        self.progress_seen: list[bool] = []

    async def upload(self, file, ctx):
        ctx.set_progress(50)
        if self.engine is not None:
            self.progress_seen.append('value="50"' in self.engine.surface.inner_html)
        await asyncio.sleep(self.delays.get(file.name, 0))
        return UploadResult(
            id=f"srv-{file.name}",
            url=f"https://cdn.test/{file.name}",
            filename=file.name,
            filesize=file.size,
            content_type=file.content_type,
        )


class FailingAdapter:
    async def upload(self, file, ctx):
        if file.name == "bad.png":
            raise RuntimeError("storage unavailable")
        return {"id": "ok", "url": f"https://cdn.test/{file.name}", "filename": file.name, "contentType": "image/png"}


class BlockingAdapter:
    def __init__(self):
        self.started = 0

    async def upload(self, file, ctx):
        self.started += 1
        await ctx.token.wait()
        return UploadResult(id="late", url="https://cdn.test/late.png", filename=file.name)


@pytest.fixture
def upload_engine():
    engine = make_engine("<p>Hello world</p>")
    select(engine, 11)
    return engine


@pytest.mark.asyncio
async def test_batch_keeps_file_order_when_completion_order_differs(upload_engine):
    adapter = DelayedAdapter({"first.png": 0.02, "second.png": 0}, engine=upload_engine)
    uploader = AttachmentUploader(upload_engine, adapter)

    ids = await uploader.upload_files([png("first.png"), png("second.png")])

    html = upload_engine.get_html()
    assert len(ids) == 2
    assert html.index("cdn.test/first.png") < html.index("cdn.test/second.png")
    assert "berry-attachment--pending" not in html
    assert adapter.progress_seen == [True, True]
    assert uploader.in_flight == []


@pytest.mark.asyncio
async def test_failed_upload_marks_only_its_placeholder(upload_engine):
    uploader = AttachmentUploader(upload_engine, FailingAdapter())

    good_id, bad_id = await uploader.upload_files([png("good.png"), png("bad.png")])

    html = upload_engine.get_html()
    assert 'src="https://cdn.test/good.png"' in html
    bad = upload_engine.surface.root.find(attrs={"data-berry-attachment-id": bad_id})
    assert "berry-attachment--error" in bad["class"]
    assert "Upload failed" in html


@pytest.mark.asyncio
async def test_cancel_all_fails_in_flight_uploads(upload_engine):
    adapter = BlockingAdapter()
    uploader = AttachmentUploader(upload_engine, adapter)

    task = asyncio.create_task(uploader.upload_files([png("a.png"), png("b.png")]))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert len(uploader.in_flight) == 2

    uploader.cancel_all()
    ids = await task

    html = upload_engine.get_html()
    assert html.count("berry-attachment--error") == 2
    assert "late.png" not in html
    assert not uploader.cancel(ids[0])


@pytest.mark.asyncio
async def test_cancel_one_upload(upload_engine):
    uploader = AttachmentUploader(upload_engine, BlockingAdapter())

    task = asyncio.create_task(uploader.upload_files([png("a.png")]))
    await asyncio.sleep(0)
    assert uploader.cancel(uploader.in_flight[0])
    [attachment_id] = await task

    figure = upload_engine.surface.root.find(attrs={"data-berry-attachment-id": attachment_id})
    assert "berry-attachment--error" in figure["class"]
    assert not uploader.cancel("missing")
