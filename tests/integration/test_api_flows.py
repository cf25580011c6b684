import pytest
from httpx import AsyncClient


def procedure_payload(case_number: str, **overrides) -> dict:
    payload = {
        "caseNumber": case_number,
        "ageYears": 71,
        "date": "2025-04-02",
        "asaScore": 3,
        "airwayManagement": "tube",
        "department": "GC",
        "procedure": "Carotid endarterectomy",
    }
    payload.update(overrides)
    return payload

@pytest.mark.asyncio
async def test_filter_lifecycle(client: AsyncClient):
    """
    Log procedures -> create filter -> count -> edit -> count -> delete.
    """
    for case_number, emergency in [("F-1", True), ("F-2", True), ("F-3", False)]:
        response = await client.post("/v1/procedures", json=procedure_payload(case_number, emergency=emergency))
        assert response.status_code == 201

    # 1. Create
    response = await client.post("/v1/filters", json={
        "name": "Emergencies",
        "goal": 5,
        "conditions": [{"_tag": "BOOLEAN_CONDITION", "field": "emergency", "value": True}],
    })
    assert response.status_code == 201
    filter_id = response.json()["id"]

    # 2. Read back
    response = await client.get(f"/v1/filters/{filter_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["summary"] == "Emergency = yes"
    assert data["conditions"] == [{"_tag": "BOOLEAN_CONDITION", "field": "emergency", "value": True}]

    response = await client.get(f"/v1/filters/{filter_id}/count")
    assert response.json() == {"filter_id": filter_id, "count": 2, "goal": 5}

    # 3. Edit: full replace of name and conditions
    response = await client.put(f"/v1/filters/{filter_id}", json={
        "name": "Emergency ASA 3",
        "conditions": [
            {"_tag": "BOOLEAN_CONDITION", "field": "emergency", "value": True},
            {"_tag": "NUMBER_CONDITION", "field": "asa-score", "operator": "eq", "value": 3},
            {"_tag": "TEXT_CONDITION", "field": "case-number", "operator": "ct", "value": "F-1"},
        ],
    })
    assert response.status_code == 204

    response = await client.get("/v1/filters")
    overview = response.json()
    assert len(overview) == 1
    assert overview[0]["name"] == "Emergency ASA 3"
    assert overview[0]["goal"] is None
    assert overview[0]["match_count"] == 1
    assert overview[0]["summary"] == "Emergency = yes +2 more"

    response = await client.get(f"/v1/filters/{filter_id}/procedures")
    assert [p["caseNumber"] for p in response.json()] == ["F-1"]

    # 4. Delete
    assert (await client.delete(f"/v1/filters/{filter_id}")).status_code == 204
    assert (await client.get(f"/v1/filters/{filter_id}")).status_code == 404

@pytest.mark.asyncio
async def test_rejected_edit_keeps_filter(client: AsyncClient):
    response = await client.post("/v1/filters", json={
        "name": "Masks",
        "conditions": [{"_tag": "ENUM_CONDITION", "field": "airway-management", "options": ["mask"], "value": "mask"}],
    })
    filter_id = response.json()["id"]

    response = await client.put(f"/v1/filters/{filter_id}", json={"name": "Masks", "conditions": []})
    assert response.status_code == 422

    data = (await client.get(f"/v1/filters/{filter_id}")).json()
    assert data["conditions"][0]["value"] == "mask"
    # Options come from the field catalog, not from the client
    assert "tube" in data["conditions"][0]["options"]
    assert data["summary"] == "Airway management = Face mask"

@pytest.mark.asyncio
async def test_procedure_crud(client: AsyncClient):
    response = await client.post("/v1/procedures", json=procedure_payload("P-100"))
    assert response.status_code == 201
    assert response.json()["ageMonths"] == 0

    response = await client.post("/v1/procedures", json=procedure_payload("P-100"))
    assert response.status_code == 409

    response = await client.put("/v1/procedures/P-100", json={"favorite": True, "asaScore": 4})
    assert response.status_code == 200
    assert response.json()["favorite"] is True
    assert response.json()["asaScore"] == 4

    response = await client.post("/v1/procedures", json=procedure_payload("P-101", asaScore=9))
    assert response.status_code == 422

    assert (await client.delete("/v1/procedures/P-100")).status_code == 204
    assert (await client.get("/v1/procedures/P-100")).status_code == 404

@pytest.mark.asyncio
async def test_export_import_round_trip(client: AsyncClient):
    await client.post("/v1/procedures", json=procedure_payload("R-1", outpatient=True))
    await client.post("/v1/filters", json={
        "name": "Outpatients",
        "conditions": [{"_tag": "BOOLEAN_CONDITION", "field": "outpatient", "value": True}],
    })

    response = await client.get("/v1/backup/export")
    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith('attachment; filename="analog-export-')
    exported = response.content

    # Importing into the same store duplicates filters but never procedures
    response = await client.post("/v1/backup/import", content=exported)
    assert response.status_code == 200
    assert response.json() == {"filters_count": 1, "procedures_count": 0, "procedures_skipped": 1}

    overview = (await client.get("/v1/filters")).json()
    assert [f["name"] for f in overview] == ["Outpatients", "Outpatients"]
    assert all(f["match_count"] == 1 for f in overview)

@pytest.mark.asyncio
async def test_procedure_patch_rejects_null_for_required_columns(client: AsyncClient):
    await client.post("/v1/procedures", json=procedure_payload("N-1", departmentOther="Cardiac"))

    for body in ({"asaScore": None}, {"ageYears": None}, {"procedure": None}, {"emergency": None}):
        response = await client.put("/v1/procedures/N-1", json=body)
        assert response.status_code == 422

    # Nullable columns can still be cleared
    response = await client.put("/v1/procedures/N-1", json={"departmentOther": None})
    assert response.status_code == 200
    assert response.json()["departmentOther"] is None
    assert response.json()["asaScore"] == 3

@pytest.mark.asyncio
async def test_procedure_takes_a_single_special(client: AsyncClient):
    response = await client.post("/v1/procedures", json=procedure_payload("S-1", specials="analgosedation"))
    assert response.status_code == 201
    assert response.json()["specials"] == "analgosedation"

    response = await client.post(
        "/v1/procedures", json=procedure_payload("S-2", specials=["analgosedation", "arterial-line"])
    )
    assert response.status_code == 422
