"""
API Integration Tests — Buyer pledges across the campaign lifecycle.
"""

import pytest
from httpx import AsyncClient

SUPPLIER_ID = "00000000-0000-0000-0000-000000000001"
BUYER_ID = "00000000-0000-0000-0000-000000000002"
OTHER_BUYER_ID = "00000000-0000-0000-0000-000000000003"


async def _publish(client: AsyncClient, campaign_id) -> None:
    resp = await client.post(f"/api/v1/campaigns/{campaign_id}/publish")
    assert resp.status_code == 200


@pytest.mark.asyncio
class TestPledgesIntegration:
    async def test_pledge_on_draft_is_rejected(self, client: AsyncClient, seeded_db, act_as):
        act_as(BUYER_ID)
        resp = await client.post(
            f"/api/v1/campaigns/{seeded_db['campaign'].campaign_id}/pledges",
            json={"quantity": 10},
        )
        assert resp.status_code == 409
        assert resp.json()["error_kind"] == "invalid_transition"

    async def test_pledge_moves_summary_across_brackets(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)

        act_as(BUYER_ID)
        first = await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 30})
        assert first.status_code == 201
        assert first.json()["status"] == "pending"

        summary = (await client.get(f"/api/v1/campaigns/{campaign_id}/summary")).json()
        assert summary["total_quantity"] == 30
        assert summary["current_unit_price"] == "25.00"
        assert summary["units_to_next_bracket"] == 20
        assert summary["percent_to_next_bracket"] == 50.0

        act_as(OTHER_BUYER_ID)
        second = await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 25})
        assert second.status_code == 201

        summary = (await client.get(f"/api/v1/campaigns/{campaign_id}/summary")).json()
        assert summary["total_pledges"] == 2
        assert summary["total_quantity"] == 55
        assert summary["current_bracket"]["bracket_order"] == 2
        assert summary["current_unit_price"] == "22.00"
        assert [b["status"] for b in summary["brackets"]] == ["achieved", "current", "locked"]

    async def test_duplicate_pledge_is_rejected(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)
        act_as(BUYER_ID)
        await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 10})

        resp = await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 20})
        assert resp.status_code == 409
        assert resp.json()["error_kind"] == "pledge_already_exists"

    async def test_update_and_withdraw_while_active(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)
        act_as(BUYER_ID)
        pledge_id = (
            await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 10})
        ).json()["pledge_id"]

        update = await client.patch(f"/api/v1/pledges/{pledge_id}", json={"quantity": 60})
        assert update.status_code == 200
        assert update.json()["quantity"] == 60

        withdraw = await client.post(f"/api/v1/pledges/{pledge_id}/withdraw")
        assert withdraw.status_code == 200
        assert withdraw.json()["status"] == "withdrawn"

        again = await client.post(f"/api/v1/pledges/{pledge_id}/withdraw")
        assert again.status_code == 200

        mine = (await client.get("/api/v1/pledges/")).json()
        assert mine == []
        withdrawn = (await client.get("/api/v1/pledges/", params={"status": "Withdrawn"})).json()
        assert [p["pledge_id"] for p in withdrawn] == [pledge_id]

        summary = (await client.get(f"/api/v1/campaigns/{campaign_id}/summary")).json()
        assert summary["total_quantity"] == 0

    async def test_commit_only_in_grace_period(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)
        act_as(BUYER_ID)
        pledge_id = (
            await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 15})
        ).json()["pledge_id"]

        early = await client.post(f"/api/v1/pledges/{pledge_id}/commit")
        assert early.status_code == 409
        assert early.json()["error_kind"] == "invalid_transition"

        act_as(SUPPLIER_ID)
        assert (await client.post(f"/api/v1/campaigns/{campaign_id}/grace-period")).status_code == 200

        act_as(BUYER_ID)
        frozen = await client.patch(f"/api/v1/pledges/{pledge_id}", json={"quantity": 99})
        assert frozen.status_code == 409

        commit = await client.post(f"/api/v1/pledges/{pledge_id}/commit")
        assert commit.status_code == 200
        assert commit.json()["status"] == "committed"
        assert commit.json()["committed_at"] is not None

        act_as(SUPPLIER_ID)
        lock = await client.post(f"/api/v1/campaigns/{campaign_id}/lock")
        assert lock.status_code == 200
        assert lock.json()["status"] == "locked"

        complete = await client.post(f"/api/v1/campaigns/{campaign_id}/complete")
        assert complete.json()["status"] == "done"

    async def test_other_buyer_cannot_touch_pledge(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)
        act_as(BUYER_ID)
        pledge_id = (
            await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 15})
        ).json()["pledge_id"]

        act_as(OTHER_BUYER_ID)
        resp = await client.post(f"/api/v1/pledges/{pledge_id}/withdraw")
        assert resp.status_code == 403
        assert resp.json()["error_kind"] == "pledge_access_denied"

    async def test_supplier_lists_campaign_pledges(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)
        act_as(BUYER_ID)
        await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 15})

        forbidden = await client.get(f"/api/v1/campaigns/{campaign_id}/pledges")
        assert forbidden.status_code == 404

        act_as(SUPPLIER_ID)
        resp = await client.get(f"/api/v1/campaigns/{campaign_id}/pledges", params={"status": "PENDING"})
        assert resp.status_code == 200
        assert [p["quantity"] for p in resp.json()] == [15]

    async def test_quantity_must_be_positive(self, client: AsyncClient, seeded_db, act_as):
        campaign_id = seeded_db["campaign"].campaign_id
        await _publish(client, campaign_id)
        act_as(BUYER_ID)
        resp = await client.post(f"/api/v1/campaigns/{campaign_id}/pledges", json={"quantity": 0})
        assert resp.status_code == 422

    async def test_unknown_pledge_is_404(self, client: AsyncClient, act_as):
        act_as(BUYER_ID)
        resp = await client.post("/api/v1/pledges/00000000-0000-0000-0000-00000000f00d/commit")
        assert resp.status_code == 404
