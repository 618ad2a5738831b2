import pytest

API = "/api/v1"


@pytest.fixture
def sheet_id(client):
    response = client.post(f"{API}/sheets", json={"name": "Dormitory A"})
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def create_room(client, sheet_id):
    def _create_room(name="Room 1", capacity=2, gender="MALE", sheet=None):
        response = client.post(f"{API}/rooms", json={
            "name": name,
            "capacity": capacity,
            "gender": gender,
            "sheetId": sheet or sheet_id,
        })
        assert response.status_code == 201, response.text
        return response.json()
    return _create_room


def join(client, room_id, firstname, lastname):
    return client.post(f"{API}/rooms/{room_id}/join", json={"firstname": firstname, "lastname": lastname})


def test_create_room_payload(client, create_room, sheet_id, notifier):
    room = create_room(name="  Room 1 ", capacity=2)

    assert room["name"] == "Room 1"
    assert room["isFull"] is False
    assert room["sheetId"] == sheet_id
    assert room["sheet"]["name"] == "Dormitory A"
    assert room["members"] == []
    assert "room_created" in notifier.names()


def test_create_room_validation(client, sheet_id):
    response = client.post(f"{API}/rooms", json={
        "name": "Room 1", "capacity": 21, "gender": "MALE", "sheetId": sheet_id,
    })
    assert response.status_code == 422

    response = client.post(f"{API}/rooms", json={
        "name": "Room 1", "capacity": 2, "gender": "OTHER", "sheetId": sheet_id,
    })
    assert response.status_code == 422


def test_create_room_conflict(client, create_room, sheet_id):
    create_room(name="Room 1")
    response = client.post(f"{API}/rooms", json={
        "name": "Room 1", "capacity": 2, "gender": "MALE", "sheetId": sheet_id,
    })
    assert response.status_code == 409


def test_create_room_unknown_sheet(client):
    response = client.post(f"{API}/rooms", json={
        "name": "Room 1", "capacity": 2, "gender": "MALE", "sheetId": "missing",
    })
    assert response.status_code == 404


def test_join_scenario(client, create_room):
    room = create_room(capacity=2)

    response = join(client, room["id"], "John", "Doe")
    assert response.status_code == 200
    assert response.json()["isFull"] is False
    assert len(response.json()["members"]) == 1

    response = join(client, room["id"], "Mike", "Lee")
    assert response.json()["isFull"] is True

    response = join(client, room["id"], "Sam", "King")
    assert response.status_code == 400
    assert len(client.get(f"{API}/rooms/{room['id']}/members").json()) == 2


def test_join_duplicate(client, create_room):
    room = create_room(capacity=3)
    join(client, room["id"], "John", "Doe")

    response = join(client, room["id"], "John", "Doe")
    assert response.status_code == 409


def test_join_validation_and_unknown_room(client, create_room):
    room = create_room()

    assert join(client, room["id"], "J", "Doe").status_code == 422
    assert join(client, room["id"], "John3", "Doe").status_code == 422
    assert join(client, "missing", "John", "Doe").status_code == 404


def test_join_accepts_accented_names(client, create_room):
    room = create_room()

    response = join(client, room["id"], " Zoé ", "O'Brien-Müller")
    assert response.status_code == 200
    assert response.json()["members"][0]["user"]["firstname"] == "Zoé"


def test_remove_member(client, create_room, notifier):
    room = create_room(capacity=1)
    member_id = join(client, room["id"], "John", "Doe").json()["members"][0]["id"]
    notifier.clear()

    response = client.delete(f"{API}/rooms/{room['id']}/members/{member_id}")

    assert response.status_code == 200
    assert response.json() == {"message": "Member removed successfully"}
    assert client.get(f"{API}/rooms/{room['id']}").json()["isFull"] is False
    assert notifier.names() == ["member_left", "room_updated"]


def test_remove_member_wrong_room(client, create_room):
    first = create_room(name="Room 1")
    second = create_room(name="Room 2")
    member_id = join(client, first["id"], "John", "Doe").json()["members"][0]["id"]

    response = client.delete(f"{API}/rooms/{second['id']}/members/{member_id}")
    assert response.status_code == 404


def test_move_member(client, create_room, notifier):
    room_a = create_room(name="Room A", capacity=2)
    room_b = create_room(name="Room B", capacity=3)
    member_id = join(client, room_a["id"], "John", "Doe").json()["members"][0]["id"]
    join(client, room_a["id"], "Mike", "Lee")
    join(client, room_b["id"], "Sam", "King")
    notifier.clear()

    response = client.post(
        f"{API}/rooms/members/{member_id}/move",
        json={"destinationRoomId": room_b["id"]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["member"]["roomId"] == room_b["id"]
    assert body["sourceRoom"]["isFull"] is False
    assert len(body["sourceRoom"]["members"]) == 1
    assert body["destinationRoom"]["isFull"] is False
    assert len(body["destinationRoom"]["members"]) == 2
    assert notifier.names() == ["member_left", "member_joined", "room_updated", "room_updated"]


def test_move_member_gender_mismatch(client, create_room):
    room_a = create_room(name="Room A", gender="FEMALE")
    room_c = create_room(name="Room C", gender="MALE")
    member_id = join(client, room_a["id"], "Jane", "Doe").json()["members"][0]["id"]

    response = client.post(
        f"{API}/rooms/members/{member_id}/move",
        json={"destinationRoomId": room_c["id"]},
    )

    assert response.status_code == 400
    assert len(client.get(f"{API}/rooms/{room_a['id']}").json()["members"]) == 1
    assert client.get(f"{API}/rooms/{room_c['id']}").json()["members"] == []


def test_move_member_unknown(client, create_room):
    room = create_room()
    response = client.post(
        f"{API}/rooms/members/missing/move",
        json={"destinationRoomId": room["id"]},
    )
    assert response.status_code == 404


def test_available_rooms(client, create_room):
    current = create_room(name="Room 1", capacity=2)
    open_room = create_room(name="Room 2", capacity=2)
    create_room(name="Room 3", capacity=2, gender="FEMALE")
    member_id = join(client, current["id"], "John", "Doe").json()["members"][0]["id"]

    response = client.get(f"{API}/rooms/members/{member_id}/available-rooms")

    assert response.status_code == 200
    assert [room["id"] for room in response.json()] == [open_room["id"]]


def test_mark_full(client, create_room, notifier):
    room = create_room(capacity=4)
    notifier.clear()

    response = client.patch(f"{API}/rooms/{room['id']}/mark-full")

    assert response.status_code == 200
    assert response.json()["isFull"] is True
    assert notifier.names() == ["room_updated"]
    assert client.patch(f"{API}/rooms/missing/mark-full").status_code == 404


def test_update_room(client, create_room):
    room = create_room(capacity=2)
    join(client, room["id"], "John", "Doe")
    join(client, room["id"], "Mike", "Lee")

    response = client.patch(f"{API}/rooms/{room['id']}", json={"capacity": 4})
    assert response.status_code == 200
    assert response.json()["capacity"] == 4
    assert response.json()["isFull"] is False

    response = client.patch(f"{API}/rooms/{room['id']}", json={"capacity": 1})
    assert response.status_code == 400


def test_delete_room(client, create_room):
    room = create_room()
    member_id = join(client, room["id"], "John", "Doe").json()["members"][0]["id"]

    assert client.delete(f"{API}/rooms/{room['id']}").status_code == 400

    client.delete(f"{API}/rooms/{room['id']}/members/{member_id}")
    assert client.delete(f"{API}/rooms/{room['id']}").status_code == 200
    assert client.get(f"{API}/rooms/{room['id']}").status_code == 404


def test_list_rooms_by_gender(client, create_room):
    create_room(name="Room 1", gender="MALE")
    create_room(name="Room 2", gender="FEMALE")

    response = client.get(f"{API}/rooms", params={"gender": "FEMALE"})

    assert [room["name"] for room in response.json()] == ["Room 2"]
