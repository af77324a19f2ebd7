async def add_note(client, user, book_id="book-1", **fields):
    payload = {"book_id": book_id, "content": "A thought", "page_start": 10, **fields}
    response = await client.post("/api/library/notes", json=payload, headers=user["headers"])
    assert response.status_code == 201
    return response.json()["note"]


async def test_create_note_with_ordered_annotations(client, user):
    note = await add_note(
        client,
        user,
        page_end=12,
        annotations=[
            {"content": "first", "annotation_type": "highlight"},
            {"content": "second"},
        ],
    )
    assert note["user_id"] == user["id"]
    assert note["page_end"] == 12
    assert [a["content"] for a in note["annotations"]] == ["first", "second"]
    assert [a["display_order"] for a in note["annotations"]] == [0, 1]

    fetched = (await client.get(f"/api/library/notes/{note['id']}", headers=user["headers"])).json()
    assert fetched["annotations"] == note["annotations"]


async def test_note_page_range_is_validated(client, user):
    response = await client.post(
        "/api/library/notes",
        json={"book_id": "book-1", "content": "x", "page_start": 10, "page_end": 5},
        headers=user["headers"],
    )
    assert response.status_code == 400
    assert response.json()["error"] == "page_end must not be before page_start"


async def test_update_note_replaces_annotations(client, user):
    note = await add_note(client, user, annotations=[{"content": "old"}])

    response = await client.patch(
        f"/api/library/notes/{note['id']}",
        json={"content": "Revised", "annotations": [{"content": "new-a"}, {"content": "new-b"}]},
        headers=user["headers"],
    )
    assert response.json() == {"success": True, "noteId": note["id"]}

    fetched = (await client.get(f"/api/library/notes/{note['id']}", headers=user["headers"])).json()
    assert fetched["content"] == "Revised"
    assert [a["content"] for a in fetched["annotations"]] == ["new-a", "new-b"]


async def test_update_note_without_annotations_keeps_them(client, user):
    note = await add_note(client, user, annotations=[{"content": "keep"}])
    await client.patch(f"/api/library/notes/{note['id']}", json={"page_start": 3}, headers=user["headers"])

    fetched = (await client.get(f"/api/library/notes/{note['id']}", headers=user["headers"])).json()
    assert fetched["page_start"] == 3
    assert [a["content"] for a in fetched["annotations"]] == ["keep"]


async def test_delete_note(client, user):
    note = await add_note(client, user, annotations=[{"content": "gone"}])

    response = await client.delete(f"/api/library/notes/{note['id']}", headers=user["headers"])
    assert response.json() == {"success": True, "noteId": note["id"]}
    assert (await client.get(f"/api/library/notes/{note['id']}", headers=user["headers"])).status_code == 404


async def test_notes_are_private(client, user, other_user):
    note = await add_note(client, user)
    response = await client.get(f"/api/library/notes/{note['id']}", headers=other_user["headers"])
    assert response.status_code == 404
    response = await client.delete(f"/api/library/notes/{note['id']}", headers=other_user["headers"])
    assert response.status_code == 404


async def test_library_overview(client, user):
    await client.post("/api/library/book-wants", json={"book_id": "book-2"}, headers=user["headers"])
    await client.post("/api/library/book-readings", json={"book_id": "book-3"}, headers=user["headers"])
    await add_note(client, user, book_id="book-1", annotations=[{"content": "a"}])
    await add_note(client, user, book_id="book-1", page_start=20)
    await add_note(client, user, book_id="book-3")

    body = (await client.get("/api/library", headers=user["headers"])).json()
    assert [entry["book_id"] for entry in body["wantBooks"]] == ["book-2"]
    assert [entry["book_id"] for entry in body["readingBooks"]] == ["book-3"]
    assert len(body["userNotes"]) == 3
    assert sorted(body["notesByBook"]) == ["book-1", "book-3"]
    assert len(body["notesByBook"]["book-1"]) == 2
    assert all("annotations" in note for note in body["userNotes"])


async def test_want_list_is_idempotent(client, user):
    first = await client.post("/api/library/book-wants", json={"book_id": "book-1"}, headers=user["headers"])
    second = await client.post("/api/library/book-wants", json={"book_id": "book-1"}, headers=user["headers"])
    assert first.json() == {"success": True}
    assert second.json() == {"success": True, "message": "Already in want list"}

    body = (await client.get("/api/library", headers=user["headers"])).json()
    assert len(body["wantBooks"]) == 1

    await client.delete("/api/library/book-wants/book-1", headers=user["headers"])
    body = (await client.get("/api/library", headers=user["headers"])).json()
    assert body["wantBooks"] == []


async def test_reading_list_add_and_remove(client, user):
    await client.post("/api/library/book-readings", json={"book_id": "book-1"}, headers=user["headers"])
    again = await client.post("/api/library/book-readings", json={"book_id": "book-1"}, headers=user["headers"])
    assert again.json()["message"] == "Already in reading list"

    response = await client.delete("/api/library/book-readings/book-1", headers=user["headers"])
    assert response.json() == {"success": True}


async def test_toggles_keep_lists_exclusive(client, user):
    response = await client.post("/api/library/toggle-want", json={"bookId": "book-1"}, headers=user["headers"])
    assert response.json() == {"success": True, "wanted": True}

    response = await client.post("/api/library/toggle-reading", json={"bookId": "book-1"}, headers=user["headers"])
    assert response.json() == {"success": True, "reading": True}

    body = (await client.get("/api/library", headers=user["headers"])).json()
    assert body["wantBooks"] == []
    assert [entry["book_id"] for entry in body["readingBooks"]] == ["book-1"]

    response = await client.post("/api/library/toggle-reading", json={"bookId": "book-1"}, headers=user["headers"])
    assert response.json() == {"success": True, "reading": False}


async def test_books_stats_anonymous_and_signed_in(client, user, other_user):
    await client.post("/api/library/book-wants", json={"book_id": "book-1"}, headers=user["headers"])
    await client.post("/api/library/book-wants", json={"book_id": "book-1"}, headers=other_user["headers"])
    await client.post("/api/library/book-readings", json={"book_id": "book-2"}, headers=other_user["headers"])
    await add_note(client, other_user, book_id="book-2")

    anonymous = (await client.post("/api/library/books-stats", json={"bookIds": ["book-1", "book-2"]})).json()
    assert anonymous["book-1"] == {
        "wantCount": 2, "readCount": 0, "noteCount": 0, "userWants": False, "userReadings": False,
    }
    assert anonymous["book-2"]["readCount"] == 1
    assert anonymous["book-2"]["noteCount"] == 1

    signed_in = (await client.post(
        "/api/library/books-stats", json={"bookIds": ["book-1", "book-2"]}, headers=user["headers"]
    )).json()
    assert signed_in["book-1"]["userWants"] is True
    assert signed_in["book-2"]["userReadings"] is False


async def test_public_book_notes_are_ordered_by_page(client, user, other_user):
    await add_note(client, user, page_start=30, annotations=[{"content": "late"}])
    await add_note(client, other_user, page_start=5)

    notes = (await client.get("/api/library/books/book-1/notes-with-annotations")).json()["notes"]
    assert [note["page_start"] for note in notes] == [5, 30]
    assert notes[1]["annotations"][0]["content"] == "late"

    mine = (await client.get("/api/library/books/book-1/user-notes", headers=user["headers"])).json()["notes"]
    assert [note["page_start"] for note in mine] == [30]


async def test_books_batch_endpoints(client, user):
    await client.post("/api/library/book-wants", json={"book_id": "book-1"}, headers=user["headers"])
    await add_note(client, user, book_id="book-2")

    counts = (await client.post("/api/books/counts", json={"bookIds": ["book-1", "book-2", "book-1"]})).json()
    assert counts == {"counts": {
        "book-1": {"want": 1, "read": 0, "note": 0},
        "book-2": {"want": 0, "read": 0, "note": 1},
    }}

    status = (await client.post(
        "/api/books/user-status", json={"bookIds": ["book-1", "book-2"]}, headers=user["headers"]
    )).json()
    assert status == {"userStatus": {
        "book-1": {"wanted": True, "reading": False},
        "book-2": {"wanted": False, "reading": False},
    }}

    notes = (await client.post("/api/books/notes/batch", json={"bookIds": ["book-2", "book-9"]})).json()["notes"]
    assert len(notes["book-2"]) == 1
    assert notes["book-9"] == []


async def test_user_status_requires_token(client):
    response = await client.post("/api/books/user-status", json={"bookIds": ["book-1"]})
    assert response.status_code == 401
