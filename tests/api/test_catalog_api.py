"""Catalog endpoints: registered triggers and actions."""

from httpx import AsyncClient


async def test_list_triggers(client: AsyncClient) -> None:
    response = await client.get("/api/v1/catalog/triggers")
    assert response.status_code == 200
    triggers = {t["event_type"]: t for t in response.json()}
    assert set(triggers) == {"task.created", "member.joined"}
    assert triggers["task.created"]["module"] == "tasks"
    assert triggers["task.created"]["output_schema"]["required"] == ["task_id"]


async def test_list_actions_filtered_by_module(client: AsyncClient) -> None:
    response = await client.get("/api/v1/catalog/actions", params={"module": "billing"})
    assert response.status_code == 200
    actions = response.json()
    assert [a["action_type"] for a in actions] == ["billing.charge", "billing.refund"]
    assert actions[0]["is_compensatable"] is True
    assert actions[0]["compensation_action_type"] == "billing.refund"


async def test_list_all_actions(client: AsyncClient) -> None:
    response = await client.get("/api/v1/catalog/actions")
    assert len(response.json()) == 6
