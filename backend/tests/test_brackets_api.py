"""
API Integration Tests — Discount bracket editing and dry-run validation.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
class TestBracketsIntegration:
    async def test_list_brackets_in_order(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.get(f"/api/v1/campaigns/{campaign_id}/brackets")
        assert resp.status_code == 200
        assert [b["bracket_order"] for b in resp.json()] == [1, 2, 3]
        assert resp.json()[0]["unit_price"] == "25.00"

    async def test_validate_reports_overlap_without_saving(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.post(
            f"/api/v1/campaigns/{campaign_id}/brackets/validate",
            json=[
                {"min_quantity": 10, "max_quantity": 50, "unit_price": "5.00", "bracket_order": 1},
                {"min_quantity": 45, "max_quantity": 99, "unit_price": "4.00", "bracket_order": 2},
            ],
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "valid": False,
            "error_kind": "overlapping_ranges",
            "offending_indices": [0, 1],
            "message": "Brackets cannot overlap",
        }

    async def test_validate_reports_inverted_range(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.post(
            f"/api/v1/campaigns/{campaign_id}/brackets/validate",
            json=[{"min_quantity": 50, "max_quantity": 10, "unit_price": "5.00", "bracket_order": 1}],
        )
        assert resp.json()["error_kind"] == "min_exceeds_max"
        assert resp.json()["message"] == "Min must be less than max quantity"

    async def test_validate_empty_set(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.post(f"/api/v1/campaigns/{campaign_id}/brackets/validate", json=[])
        assert resp.json()["valid"] is True

    async def test_add_bracket_to_draft(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        # Replace the open-ended top tier with a bounded one, then extend.
        brackets = (await client.get(f"/api/v1/campaigns/{campaign_id}/brackets")).json()
        top_id = brackets[2]["bracket_id"]
        patch = await client.patch(
            f"/api/v1/campaigns/{campaign_id}/brackets/{top_id}",
            json={"max_quantity": 199},
        )
        assert patch.status_code == 200
        assert patch.json()["max_quantity"] == 199

        resp = await client.post(
            f"/api/v1/campaigns/{campaign_id}/brackets",
            json={"min_quantity": 200, "max_quantity": None, "unit_price": "17.50", "bracket_order": 4},
        )
        assert resp.status_code == 201
        assert resp.json()["unit_price"] == "17.50"

    async def test_add_overlapping_bracket_is_rejected(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.post(
            f"/api/v1/campaigns/{campaign_id}/brackets",
            json={"min_quantity": 40, "max_quantity": 60, "unit_price": "23.00", "bracket_order": 4},
        )
        assert resp.status_code == 422
        assert resp.json()["validation"]["error_kind"] == "overlapping_ranges"

    async def test_duplicate_bracket_order_is_rejected(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.post(
            f"/api/v1/campaigns/{campaign_id}/brackets",
            json={"min_quantity": 1, "max_quantity": 5, "unit_price": "30.00", "bracket_order": 2},
        )
        assert resp.status_code == 422

    async def test_inverted_update_is_rejected(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        bracket_id = seeded_db["brackets"][0].bracket_id
        resp = await client.patch(
            f"/api/v1/campaigns/{campaign_id}/brackets/{bracket_id}",
            json={"min_quantity": 60, "max_quantity": 20},
        )
        assert resp.status_code == 422
        assert resp.json()["validation"]["error_kind"] == "min_exceeds_max"

    async def test_null_required_field_in_update_is_rejected(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        bracket_id = seeded_db["brackets"][0].bracket_id
        for field in ("min_quantity", "unit_price", "bracket_order"):
            resp = await client.patch(
                f"/api/v1/campaigns/{campaign_id}/brackets/{bracket_id}",
                json={field: None},
            )
            assert resp.status_code == 422, field

        unchanged = (await client.get(f"/api/v1/campaigns/{campaign_id}/brackets")).json()[0]
        assert unchanged["min_quantity"] == 10
        assert unchanged["unit_price"] == "25.00"

    async def test_clearing_max_quantity_on_top_bracket(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        top_id = seeded_db["brackets"][2].bracket_id
        bounded = await client.patch(
            f"/api/v1/campaigns/{campaign_id}/brackets/{top_id}",
            json={"max_quantity": 199},
        )
        assert bounded.status_code == 200

        resp = await client.patch(
            f"/api/v1/campaigns/{campaign_id}/brackets/{top_id}",
            json={"max_quantity": None},
        )
        assert resp.status_code == 200
        assert resp.json()["max_quantity"] is None

    async def test_delete_bracket(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        bracket_id = seeded_db["brackets"][1].bracket_id
        resp = await client.delete(f"/api/v1/campaigns/{campaign_id}/brackets/{bracket_id}")
        assert resp.status_code == 204

        remaining = (await client.get(f"/api/v1/campaigns/{campaign_id}/brackets")).json()
        assert [b["bracket_order"] for b in remaining] == [1, 3]

    async def test_brackets_frozen_after_publish(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        bracket_id = seeded_db["brackets"][0].bracket_id
        await client.post(f"/api/v1/campaigns/{campaign_id}/publish")

        add = await client.post(
            f"/api/v1/campaigns/{campaign_id}/brackets",
            json={"min_quantity": 500, "max_quantity": None, "unit_price": "15.00", "bracket_order": 9},
        )
        assert add.status_code == 409
        assert add.json()["error_kind"] == "invalid_transition"

        update = await client.patch(
            f"/api/v1/campaigns/{campaign_id}/brackets/{bracket_id}",
            json={"unit_price": "1.00"},
        )
        assert update.status_code == 409

        delete = await client.delete(f"/api/v1/campaigns/{campaign_id}/brackets/{bracket_id}")
        assert delete.status_code == 409

    async def test_unknown_bracket_is_404(self, client: AsyncClient, seeded_db):
        campaign_id = seeded_db["campaign"].campaign_id
        resp = await client.delete(
            f"/api/v1/campaigns/{campaign_id}/brackets/00000000-0000-0000-0000-00000000beef"
        )
        assert resp.status_code == 404
