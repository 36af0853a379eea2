# mypy: ignore-errors
# tests/v1/test_topics.py
"""Tests for topic endpoints."""

from fastapi import status

from zeelink.core.errors import ErrorCode
from zeelink.models import PostTopic, Topic


def test_list_topics(client, db_session) -> None:
    db_session.add_all([Topic(name="社团"), Topic(name="考研")])
    db_session.flush()

    response = client.get("/api/v1/topics")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total"] == 2
    assert {item["name"] for item in data["items"]} == {"社团", "考研"}

    filtered = client.get("/api/v1/topics", params={"keyword": "考"}).json()["data"]
    assert [item["name"] for item in filtered["items"]] == ["考研"]


def test_get_topic_counts_posts(client, test_post, topic) -> None:
    response = client.get(f"/api/v1/topics/{topic.id}")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["name"] == "校园生活"
    assert data["post_count"] == 1


def test_get_missing_topic(client) -> None:
    response = client.get("/api/v1/topics/999999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "话题不存在"


def test_topic_posts(client, test_post, topic) -> None:
    response = client.get(f"/api/v1/topics/{topic.id}/posts")
    assert response.status_code == status.HTTP_200_OK
    items = response.json()["data"]["items"]
    assert [item["id"] for item in items] == [test_post.id]


def test_create_topic_as_admin(client, admin_headers) -> None:
    response = client.post("/api/v1/topics", json={"name": " 二手交易 "}, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["name"] == "二手交易"

    duplicate = client.post("/api/v1/topics", json={"name": "二手交易"}, headers=admin_headers)
    assert duplicate.status_code == status.HTTP_409_CONFLICT
    assert duplicate.json()["code"] == ErrorCode.DUPLICATE_CONTENT


def test_create_topic_requires_admin(client, auth_headers) -> None:
    response = client.post("/api/v1/topics", json={"name": "二手交易"}, headers=auth_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_rename_topic(client, topic, admin_headers, db_session) -> None:
    db_session.add(Topic(name="已占用"))
    db_session.flush()

    taken = client.put(f"/api/v1/topics/{topic.id}", json={"name": "已占用"}, headers=admin_headers)
    assert taken.status_code == status.HTTP_409_CONFLICT

    response = client.put(f"/api/v1/topics/{topic.id}", json={"name": "校园日常"}, headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["name"] == "校园日常"


def test_delete_topic_detaches_posts(client, test_post, topic, admin_headers, db_session) -> None:
    response = client.delete(f"/api/v1/topics/{topic.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert db_session.query(PostTopic).filter_by(topic_id=topic.id).count() == 0

    post = client.get(f"/api/v1/posts/{test_post.id}").json()["data"]
    assert post["topics"] == []
