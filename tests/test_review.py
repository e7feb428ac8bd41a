async def test_admin_rejects_with_comment(client, student, admin, submit):
    _, headers = student
    _, admin_headers = admin
    created = (await submit(headers)).json()

    response = await client.post(f"/api/achievements/{created['id']}/review",
                                 json={"action": "reject", "comment": "Illegible scan"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "Rejected"
    assert response.json()["reviewer_comment"] == "Illegible scan"


async def test_owner_edit_resets_review(client, student, admin, submit):
    _, headers = student
    _, admin_headers = admin
    created = (await submit(headers)).json()
    await client.post(f"/api/achievements/{created['id']}/review",
                      json={"action": "reject", "comment": "Illegible scan"}, headers=admin_headers)

    response = await client.put(f"/api/achievements/{created['id']}", data={"title": "Science Fair 2024"},
                                headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "Pending"
    assert response.json()["reviewer_comment"] == ""


async def test_any_edit_resets_approved_record(client, student, admin, submit):
    _, headers = student
    _, admin_headers = admin

    for patch in ({}, {"title": "Science Fair"}, {"description": "more detail"}, {"category": "Sports"}):
        created = (await submit(headers)).json()
        await client.post(f"/api/achievements/{created['id']}/review",
                          json={"action": "approve", "comment": "Well done"}, headers=admin_headers)

        response = await client.put(f"/api/achievements/{created['id']}", json=patch, headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == "Pending"
        assert response.json()["reviewer_comment"] == ""


async def test_later_review_overwrites_earlier_one(client, student, admin, submit):
    _, headers = student
    _, admin_headers = admin
    created = (await submit(headers)).json()
    url = f"/api/achievements/{created['id']}/review"

    await client.post(url, json={"action": "approve", "comment": "c1"}, headers=admin_headers)
    response = await client.post(url, json={"action": "reject", "comment": "c2"}, headers=admin_headers)

    assert response.json()["status"] == "Rejected"
    assert response.json()["reviewer_comment"] == "c2"


async def test_review_comment_defaults_to_empty(client, student, admin, submit):
    _, headers = student
    _, admin_headers = admin
    created = (await submit(headers)).json()

    response = await client.post(f"/api/achievements/{created['id']}/review",
                                 json={"action": "reject"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "Rejected"
    assert response.json()["reviewer_comment"] == ""


async def test_review_rejects_unknown_action(client, student, admin, submit):
    _, headers = student
    _, admin_headers = admin
    created = (await submit(headers)).json()

    response = await client.post(f"/api/achievements/{created['id']}/review",
                                 json={"action": "Approve"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid action"


async def test_review_missing_record(client, admin):
    _, admin_headers = admin

    response = await client.post("/api/achievements/999/review", json={"action": "approve"}, headers=admin_headers)

    assert response.status_code == 404


async def test_admin_list_filters_and_annotates_owner(client, student, other_student, admin, submit):
    _, headers = student
    _, other_headers = other_student
    _, admin_headers = admin
    academic = (await submit(headers)).json()
    sports = (await submit(other_headers, category="Sports")).json()
    await client.post(f"/api/achievements/{sports['id']}/review", json={"action": "approve"}, headers=admin_headers)

    everything = (await client.get("/api/achievements", headers=admin_headers)).json()
    only_sports = (await client.get("/api/achievements", params={"category": "Sports"},
                                    headers=admin_headers)).json()
    pending = (await client.get("/api/achievements", params={"status": "Pending"}, headers=admin_headers)).json()
    unknown = await client.get("/api/achievements", params={"category": "Music"}, headers=admin_headers)

    assert [a["id"] for a in everything] == [sports["id"], academic["id"]]
    assert everything[0]["owner"] == {"id": sports["owner_id"], "name": "Tara Other", "email": "other@example.com"}
    assert [a["id"] for a in only_sports] == [sports["id"]]
    assert [a["id"] for a in pending] == [academic["id"]]
    assert unknown.status_code == 200
    assert unknown.json() == []
