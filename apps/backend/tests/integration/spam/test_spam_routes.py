"""Integration tests for moderation routes."""
from unittest.mock import AsyncMock, patch

import pytest

from registry_backend.core.errors import (
    IndexRemovalFailedError,
    NotAuthorizedError,
    TransactionFailedError,
    UserNotFoundError,
    ValidationFailedError,
)
from registry_backend.services.provider_index import IndexRemovalReport
from registry_backend.services.spam_service import SpamMarkResult, SpamMarkStatus


def _patch_mark(**kwargs):
    return patch("registry_backend.api.routes.spam.mark_spammer", new_callable=AsyncMock, **kwargs)


class TestMarkSpammer:

    def test_requires_auth(self, client):
        response = client.post("/spammers/bob", json={"confirm": True})
        assert response.status_code == 401

    def test_applied(self, moderator_client, moderator):
        result = SpamMarkResult(status=SpamMarkStatus.APPLIED, username="bob", package_ids=[1, 2])

        with _patch_mark(return_value=result) as mark:
            response = moderator_client.post("/spammers/bob", json={"confirm": True, "reason": "link spam"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "applied"
        assert data["package_ids"] == [1, 2]
        actor, username, request = mark.await_args.args[1:4]
        assert actor is moderator
        assert username == "bob"
        assert request.confirm is True
        assert request.reason == "link spam"

    def test_partially_applied(self, moderator_client):
        result = SpamMarkResult(
            status=SpamMarkStatus.PARTIALLY_APPLIED,
            username="bob",
            package_ids=[1, 2],
            failed_package_ids=[2],
            failed_package_names=["bob/two"],
        )

        with _patch_mark(return_value=result):
            response = moderator_client.post("/spammers/bob", json={"confirm": True})

        assert response.status_code == 200
        assert response.json()["status"] == "partially_applied"
        assert response.json()["failed_package_names"] == ["bob/two"]

    def test_unconfirmed_is_rejected_with_400(self, moderator_client):
        with _patch_mark(side_effect=ValidationFailedError("Spammer marking must be confirmed")):
            response = moderator_client.post("/spammers/bob", json={})

        assert response.status_code == 400
        data = response.json()
        assert data["status"] == "rejected"
        assert data["username"] == "bob"
        assert data["reason"] == "Spammer marking must be confirmed"
        assert data["package_ids"] == []

    def test_not_authorized_is_403(self, authenticated_client):
        with _patch_mark(side_effect=NotAuthorizedError("This user can not mark others as spammers")):
            response = authenticated_client.post("/spammers/bob", json={"confirm": True})

        assert response.status_code == 403

    def test_unknown_user_is_404(self, moderator_client):
        with _patch_mark(side_effect=UserNotFoundError("ghost")):
            response = moderator_client.post("/spammers/ghost", json={"confirm": True})

        assert response.status_code == 404

    def test_rolled_back_is_503(self, moderator_client):
        with _patch_mark(side_effect=TransactionFailedError("deadlock", failed_step="committing")):
            response = moderator_client.post("/spammers/bob", json={"confirm": True})

        assert response.status_code == 503
        assert response.json() == {"detail": TransactionFailedError.user_message}

    def test_reason_length_limited(self, moderator_client):
        response = moderator_client.post("/spammers/bob", json={"confirm": True, "reason": "x" * 501})

        assert response.status_code == 422


class TestRetryIndexRemovals:

    def test_moderator_can_retry(self, moderator_client):
        report = IndexRemovalReport(
            removed=["bob/one"],
            failures=[IndexRemovalFailedError("bob/two", None, "timeout")],
        )

        with patch(
            "registry_backend.api.routes.spam.retry_index_removal",
            new_callable=AsyncMock,
            return_value=report,
        ) as retry:
            response = moderator_client.post(
                "/spammers/index-removals/retry",
                json={"packages": ["bob/one", "bob/two"]},
            )

        assert response.status_code == 200
        assert response.json() == {"removed": ["bob/one"], "failed": ["bob/two"]}
        retry.assert_awaited_once_with(["bob/one", "bob/two"])

    def test_requires_antispam_role(self, authenticated_client):
        with patch("registry_backend.api.routes.spam.retry_index_removal", new_callable=AsyncMock) as retry:
            response = authenticated_client.post(
                "/spammers/index-removals/retry",
                json={"packages": ["bob/one"]},
            )

        assert response.status_code == 403
        retry.assert_not_awaited()

    def test_rejects_empty_list(self, moderator_client):
        response = moderator_client.post("/spammers/index-removals/retry", json={"packages": []})

        assert response.status_code == 422
