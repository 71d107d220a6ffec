import io
from datetime import timedelta

import pytest

from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.schemas.task import TaskCreateRequest
from taskboard.services.proof_service import UNABLE_TO_LOAD, ProofService, ProofUpload
from taskboard.services.task_service import TaskService
from taskboard.utils.timezone import now_utc

from tests.conftest import ADMIN_ID, ALICE_ID, BOB_ID, session_for


async def _submitted_task(db, feed, storage, names):
    request = TaskCreateRequest(
        title="Restock shelves",
        description="Photo of the full shelves",
        assigned_to=ALICE_ID,
        deadline=now_utc() + timedelta(days=1),
    )
    task, _ = await TaskService(feed).create_task(db, session_for(ADMIN_ID), request)
    uploads = [
        ProofUpload(file_name=name, content_type=content_type, size=4, fileobj=io.BytesIO(b"data"))
        for name, content_type in names
    ]
    result = await ProofService(feed).submit_proof(db, storage, session_for(ALICE_ID), task.id, uploads)
    return task, result.attachments


async def test_admin_gets_signed_urls_with_media_types(db, feed, storage):
    task, keys = await _submitted_task(db, feed, storage, [("shelf.png", "image/png"), ("walkthrough.MOV", "video/quicktime")])

    proofs = await ProofService(feed).list_proofs(db, storage, session_for(ADMIN_ID), task.id)

    by_path = {proof.file_path: proof for proof in proofs}
    assert set(by_path) == set(keys)
    assert by_path[keys[0]].media_type == "image"
    assert by_path[keys[1]].media_type == "video"
    for proof in proofs:
        assert proof.url.endswith("?expires=3600")
        assert proof.error is None


async def test_one_failed_signature_does_not_hide_other_files(db, feed, storage):
    task, keys = await _submitted_task(db, feed, storage, [("a.jpg", "image/jpeg"), ("b.webm", "video/webm")])
    storage.fail_sign.add(keys[1])

    proofs = await ProofService(feed).list_proofs(db, storage, session_for(ADMIN_ID), task.id)

    by_path = {proof.file_path: proof for proof in proofs}
    assert by_path[keys[0]].url is not None
    assert by_path[keys[1]].url is None
    assert by_path[keys[1]].error == UNABLE_TO_LOAD
    assert by_path[keys[1]].media_type == "video"


async def test_assignee_can_view_own_proofs(db, feed, storage):
    task, keys = await _submitted_task(db, feed, storage, [("a.jpg", "image/jpeg")])

    proofs = await ProofService(feed).list_proofs(db, storage, session_for(ALICE_ID), task.id)

    assert [proof.file_path for proof in proofs] == keys


async def test_assignee_cannot_view_proofs_before_start_date(db, feed, storage):
    request = TaskCreateRequest(
        title="Stocktake next month",
        description="Count every box in aisle 4",
        assigned_to=ALICE_ID,
        deadline=now_utc() + timedelta(days=40),
        start_date=now_utc() + timedelta(days=30),
    )
    task, _ = await TaskService(feed).create_task(db, session_for(ADMIN_ID), request)

    with pytest.raises(BusinessException) as exc:
        await ProofService(feed).list_proofs(db, storage, session_for(ALICE_ID), task.id)
    assert exc.value.error_code == ErrorCode.TASK_NOT_FOUND

    assert await ProofService(feed).list_proofs(db, storage, session_for(ADMIN_ID), task.id) == []


async def test_other_user_cannot_view_proofs(db, feed, storage):
    task, _ = await _submitted_task(db, feed, storage, [("a.jpg", "image/jpeg")])

    with pytest.raises(BusinessException) as exc:
        await ProofService(feed).list_proofs(db, storage, session_for(BOB_ID), task.id)
    assert exc.value.error_code == ErrorCode.TASK_NOT_FOUND
