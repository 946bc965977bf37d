"""Tests for the event image gallery and its dense ordering.

Covers:
- Append at the end of the sequence
- Delete closes the gap
- Move with clamping, shifting the images in between
- Creator-only mutations
- Orders stay 0..N-1 across a mixed add/delete/move sequence
"""
from tests.conftest import sign_in_user, create_test_event, reason


def _add(client, event_id, headers, url):
    resp = client.post(f"/api/events/{event_id}/images", json={"url": url}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["image"]


def _gallery(client, event_id, headers=None):
    images = client.get(f"/api/events/{event_id}/images", headers=headers or {}).json()["images"]
    return [(img["url"], img["order"]) for img in images]


def _setup(client, count=3):
    alice = sign_in_user(client, "alice@example.com")
    event = create_test_event(client, alice["headers"])
    images = [_add(client, event["id"], alice["headers"], f"https://img.test/{i}.png") for i in range(count)]
    return alice, event, images


class TestAddImage:

    def test_images_appended_in_order(self, client):
        _, event, images = _setup(client)
        assert [img["order"] for img in images] == [0, 1, 2]
        assert _gallery(client, event["id"]) == [
            ("https://img.test/0.png", 0), ("https://img.test/1.png", 1), ("https://img.test/2.png", 2),
        ]

    def test_add_keeps_metadata(self, client):
        alice = sign_in_user(client)
        event = create_test_event(client, alice["headers"])
        resp = client.post(f"/api/events/{event['id']}/images", json={
            "url": "https://img.test/a.png", "alt_text": "Stage", "caption": "Opening", "width": 800, "height": 600,
        }, headers=alice["headers"])
        image = resp.json()["image"]
        assert (image["alt_text"], image["caption"], image["width"], image["height"]) == ("Stage", "Opening", 800, 600)

    def test_only_creator_may_add(self, client):
        alice = sign_in_user(client, "alice@example.com")
        bob = sign_in_user(client, "bob@example.com")
        event = create_test_event(client, alice["headers"])
        resp = client.post(f"/api/events/{event['id']}/images", json={"url": "https://x"}, headers=bob["headers"])
        assert resp.status_code == 403
        assert reason(resp) == "not_event_creator"


class TestDeleteImage:

    def test_delete_middle_image_compacts(self, client):
        alice, event, images = _setup(client)
        resp = client.delete(f"/api/events/{event['id']}/images/{images[1]['id']}", headers=alice["headers"])
        assert resp.status_code == 200
        assert _gallery(client, event["id"]) == [("https://img.test/0.png", 0), ("https://img.test/2.png", 1)]

        added = _add(client, event["id"], alice["headers"], "https://img.test/3.png")
        assert added["order"] == 2

    def test_delete_missing_image(self, client):
        alice, event, _ = _setup(client, count=1)
        resp = client.delete(f"/api/events/{event['id']}/images/nope", headers=alice["headers"])
        assert resp.status_code == 404
        assert reason(resp) == "image_not_found"

    def test_only_creator_may_delete(self, client):
        _, event, images = _setup(client, count=1)
        bob = sign_in_user(client, "bob@example.com")
        resp = client.delete(f"/api/events/{event['id']}/images/{images[0]['id']}", headers=bob["headers"])
        assert resp.status_code == 403


class TestMoveImage:

    def _move(self, client, event, image, headers, order):
        resp = client.patch(f"/api/events/{event['id']}/images/{image['id']}", json={"order": order}, headers=headers)
        assert resp.status_code == 200, resp.text
        return resp.json()["image"]

    def test_move_forward(self, client):
        alice, event, images = _setup(client, count=4)
        moved = self._move(client, event, images[0], alice["headers"], 2)
        assert moved["order"] == 2
        assert [url[-5] for url, _ in _gallery(client, event["id"])] == ["1", "2", "0", "3"]
        assert [order for _, order in _gallery(client, event["id"])] == [0, 1, 2, 3]

    def test_move_backward(self, client):
        alice, event, images = _setup(client, count=4)
        self._move(client, event, images[3], alice["headers"], 1)
        assert [url[-5] for url, _ in _gallery(client, event["id"])] == ["0", "3", "1", "2"]

    def test_move_is_clamped(self, client):
        alice, event, images = _setup(client)
        moved = self._move(client, event, images[0], alice["headers"], 99)
        assert moved["order"] == 2
        moved = self._move(client, event, images[2], alice["headers"], -5)
        assert moved["order"] == 0
        assert [order for _, order in _gallery(client, event["id"])] == [0, 1, 2]

    def test_edit_caption_without_moving(self, client):
        alice, event, images = _setup(client)
        resp = client.patch(f"/api/events/{event['id']}/images/{images[1]['id']}", json={
            "caption": "Group photo",
        }, headers=alice["headers"])
        image = resp.json()["image"]
        assert image["caption"] == "Group photo"
        assert image["order"] == 1

    def test_only_creator_may_move(self, client):
        _, event, images = _setup(client)
        bob = sign_in_user(client, "bob@example.com")
        resp = client.patch(f"/api/events/{event['id']}/images/{images[0]['id']}", json={"order": 2},
                            headers=bob["headers"])
        assert resp.status_code == 403


class TestMixedSequence:
    """Any interleaving of add/delete/move keeps orders exactly 0..N-1."""

    def test_orders_stay_dense_after_every_step(self, client):
        alice, event, images = _setup(client, count=2)
        eid, headers = event["id"], alice["headers"]
        ids = [img["id"] for img in images]
        added = 2

        def add():
            nonlocal added
            ids.append(_add(client, eid, headers, f"https://img.test/{added}.png")["id"])
            added += 1

        def delete(position):
            image_id = ids.pop(position)
            assert client.delete(f"/api/events/{eid}/images/{image_id}", headers=headers).status_code == 200

        def move(position, target):
            image_id = ids.pop(position)
            resp = client.patch(f"/api/events/{eid}/images/{image_id}", json={"order": target}, headers=headers)
            assert resp.status_code == 200
            ids.insert(max(0, min(target, len(ids))), image_id)

        steps = [
            add, add, lambda: move(0, 3), lambda: delete(1), add, lambda: move(3, 0),
            lambda: delete(0), lambda: move(2, -1), add, lambda: delete(3), lambda: move(1, 10),
            add, lambda: delete(3), lambda: move(2, 1), lambda: delete(0), lambda: delete(0),
        ]
        for step in steps:
            step()
            listed = client.get(f"/api/events/{eid}/images").json()["images"]
            assert [img["order"] for img in listed] == list(range(len(ids)))
            assert [img["id"] for img in listed] == ids
