import uuid

import pytest


async def _post(client, url, body=None, expected=201):
    resp = await client.post(url, json=body)
    assert resp.status_code == expected, resp.text
    return resp.json()


@pytest.fixture
async def festival(client):
    """Event with one general bar, fernet on consignment and purchased coke."""
    event = await _post(client, "/events/", {"name": "Festival"})
    bar = await _post(client, f"/events/{event['id']}/bars", {"name": "Main"})
    fernet = await _post(client, "/drinks/", {"name": "Fernet", "volume_ml": 750, "sku": " fer-1 "})
    coke = await _post(client, "/drinks/", {"name": "Coca-Cola", "volume_ml": 2250})
    supplier = await _post(client, "/suppliers/", {"name": "Consignor"})
    cocktail = await _post(client, "/cocktails/", {"name": "Fernet con Coca", "volume_ml": 300})
    await _post(
        client,
        f"/bars/{bar['id']}/stock",
        {
            "drink_id": fernet["id"],
            "supplier_id": supplier["id"],
            "quantity": 750,
            "unit_cost": 12000,
            "ownership_mode": "consignment",
        },
    )
    await _post(
        client,
        f"/bars/{bar['id']}/stock",
        {"drink_id": coke["id"], "supplier_id": supplier["id"], "quantity": 5000, "unit_cost": 3000},
    )
    recipe = await _post(
        client,
        f"/events/{event['id']}/recipes",
        {
            "cocktail_name": "Fernet con Coca",
            "glass_volume_ml": 300,
            "bar_types": ["general"],
            "components": [
                {"drink_id": fernet["id"], "percentage": 30},
                {"drink_id": coke["id"], "percentage": 70},
            ],
        },
    )
    return {
        "event": event,
        "bar": bar,
        "fernet": fernet,
        "coke": coke,
        "supplier": supplier,
        "cocktail": cocktail,
        "recipe": recipe,
    }


async def test_catalog_and_recipe_created_over_http(client, festival):
    assert festival["fernet"]["sku"] == "FER-1"
    assert festival["event"]["depletion_policy"] == "cheapest_first"
    assert festival["bar"]["bar_type"] == "general"
    assert [c["percentage"] for c in festival["recipe"]["components"]] == [30, 70]

    resp = await client.post("/drinks/", json={"name": "Fernet 2", "volume_ml": 750, "sku": "FER-1"})
    assert resp.status_code == 409

    resp = await client.get(f"/bars/{festival['bar']['id']}/stock")
    assert resp.status_code == 200
    assert sorted(lot["quantity"] for lot in resp.json()) == [750, 5000]


async def test_sale_depletes_and_notifies(client, festival, sale_broadcaster):
    bar_id = festival["bar"]["id"]
    dashboard = sale_broadcaster.subscribe(uuid.UUID(festival["event"]["id"]))

    body = await _post(client, f"/bars/{bar_id}/sales", {"cocktail_id": festival["cocktail"]["id"], "quantity": 2})

    assert body["pool"] == "recipe_ingredient"
    assert body["sale"]["quantity"] == 2
    amounts = {d["drink_id"]: d["amount"] for d in body["depletions"]}
    assert amounts == {festival["fernet"]["id"]: 180, festival["coke"]["id"]: 420}

    stock = (await client.get(f"/bars/{bar_id}/stock")).json()
    assert sorted(lot["quantity"] for lot in stock) == [570, 4580]

    movements = (await client.get(f"/bars/{bar_id}/sales/{body['sale']['id']}/movements")).json()
    assert sorted(m["quantity"] for m in movements) == [-420, -180]
    assert {m["type"] for m in movements} == {"sale"}

    assert dashboard.qsize() == 1
    published = dashboard.get_nowait().to_dict()
    assert published["sale"]["id"] == body["sale"]["id"]
    assert published["event_id"] == festival["event"]["id"]


async def test_insufficient_stock_is_409_with_amounts(client, festival, sale_broadcaster):
    bar_id = festival["bar"]["id"]
    dashboard = sale_broadcaster.subscribe(uuid.UUID(festival["event"]["id"]))

    resp = await client.post(f"/bars/{bar_id}/sales", json={"cocktail_id": festival["cocktail"]["id"], "quantity": 100})

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "InsufficientStock"
    assert body["drink_id"] == festival["fernet"]["id"]
    assert body["required"] == 9000
    assert body["available"] == 750
    assert "Insufficient stock" in body["detail"]

    assert (await client.get(f"/bars/{bar_id}/sales")).json() == []
    assert dashboard.empty()


async def test_unknown_cocktail_recipe_and_bar(client, festival):
    bar_id = festival["bar"]["id"]
    negroni = await _post(client, "/cocktails/", {"name": "Negroni", "volume_ml": 90})

    resp = await client.post(f"/bars/{bar_id}/sales", json={"cocktail_id": negroni["id"]})
    assert resp.status_code == 422
    assert resp.json()["error"] == "NoRecipe"

    resp = await client.post(f"/bars/{uuid.uuid4()}/sales", json={"cocktail_id": negroni["id"]})
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"


async def test_sale_quantity_must_be_positive(client, festival):
    resp = await client.post(
        f"/bars/{festival['bar']['id']}/sales",
        json={"cocktail_id": festival["cocktail"]["id"], "quantity": 0},
    )
    assert resp.status_code == 422
    assert isinstance(resp.json()["detail"], list)


async def test_recipe_over_100_percent_is_rejected(client, festival):
    resp = await client.post(
        f"/events/{festival['event']['id']}/recipes",
        json={
            "cocktail_name": "Double fernet",
            "glass_volume_ml": 300,
            "bar_types": ["VIP"],
            "components": [
                {"drink_id": festival["fernet"]["id"], "percentage": 60},
                {"drink_id": festival["coke"]["id"], "percentage": 50},
            ],
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidRecipe"


async def test_override_round_trip(client, festival):
    url = f"/bars/{festival['bar']['id']}/recipe-overrides/{festival['cocktail']['id']}"
    assert (await client.get(url)).status_code == 404

    resp = await client.put(url, json={"components": [{"drink_id": festival["fernet"]["id"], "percentage": 100}]})
    assert resp.status_code == 200
    assert resp.json()["components"][0]["drink_name"] == "Fernet"

    assert (await client.delete(url)).status_code == 204
    assert (await client.get(url)).status_code == 404


async def test_transfer_to_same_bar_is_400(client, festival):
    bar_id = festival["bar"]["id"]
    resp = await client.post(
        f"/bars/{bar_id}/stock/transfer",
        json={
            "to_bar_id": bar_id,
            "drink_id": festival["coke"]["id"],
            "supplier_id": festival["supplier"]["id"],
            "quantity": 100,
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidTransfer"


async def test_consignment_return_ignores_client_quantity(client, festival):
    bar_id = festival["bar"]["id"]
    await _post(client, f"/bars/{bar_id}/sales", {"cocktail_id": festival["cocktail"]["id"], "quantity": 1})

    summary = (await client.get(f"/bars/{bar_id}/consignment/summary")).json()
    assert [(i["drink_sku"], i["total_consumed"], i["quantity_to_return"]) for i in summary] == [("FER-1", 90, 660)]

    body = {"drink_id": festival["fernet"]["id"], "supplier_id": festival["supplier"]["id"], "quantity": 5}
    returned = await _post(client, f"/bars/{bar_id}/consignment/returns", body)
    assert returned["quantity_returned"] == 660

    resp = await client.post(f"/bars/{bar_id}/consignment/returns", json=body)
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyReturned"

    history = (await client.get(f"/bars/{bar_id}/consignment/returns")).json()
    assert [h["quantity_returned"] for h in history] == [660]


async def test_returning_purchased_stock_is_400(client, festival):
    resp = await client.post(
        f"/bars/{festival['bar']['id']}/consignment/returns",
        json={"drink_id": festival["coke"]["id"], "supplier_id": festival["supplier"]["id"]},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidOwnership"


async def test_event_summary_and_bulk_return(client, festival):
    event_id = festival["event"]["id"]
    bar_id = festival["bar"]["id"]

    summary = (await client.get(f"/events/{event_id}/consignment/summary")).json()
    assert summary["event_name"] == "Festival"
    assert summary["grand_total"] == 750
    assert [g["supplier_name"] for g in summary["by_supplier"]] == ["Consignor"]

    out = await _post(client, f"/bars/{bar_id}/consignment/returns/all", expected=200)
    assert [r["quantity_returned"] for r in out["returned"]] == [750]
    assert out["failed"] == []

    summary = (await client.get(f"/events/{event_id}/consignment/summary")).json()
    assert summary["grand_total"] == 0
