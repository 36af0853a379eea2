# mypy: ignore-errors
# tests/v1/test_posts.py
"""Tests for post and comment endpoints."""

from fastapi import status

from zeelink.core.errors import ErrorCode
from zeelink.core.settings import settings
from zeelink.models import Post, PostComment, PostTopic, Topic


def test_list_posts(client, test_post, topic) -> None:
    response = client.get("/api/v1/posts")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total"] == 1
    post = data["items"][0]
    assert post["content"] == "第一条帖子"
    assert post["author"]["nickname"] == "测试用户"
    assert post["topics"] == [{"id": topic.id, "name": topic.name}]
    assert "post_topics" not in post


def test_list_posts_pagination(client, db_session, test_user, site) -> None:
    """Fifteen posts at ten per page leave five on the second page."""
    db_session.add_all(
        Post(content=f"帖子 {index}", author_id=test_user.id, site_id=site.id) for index in range(15)
    )
    db_session.flush()

    response = client.get("/api/v1/posts", params={"page": 2, "pageSize": 10})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total"] == 15
    assert data["totalPages"] == 2
    assert data["page"] == 2
    assert len(data["items"]) == 5


def test_list_posts_filters(client, db_session, test_post, other_user, site, topic) -> None:
    db_session.add(Post(content="另一篇 食堂", author_id=other_user.id, site_id=site.id))
    db_session.flush()

    by_author = client.get("/api/v1/posts", params={"authorId": other_user.id}).json()["data"]
    assert [post["content"] for post in by_author["items"]] == ["另一篇 食堂"]

    by_keyword = client.get("/api/v1/posts", params={"keyword": "食堂"}).json()["data"]
    assert by_keyword["total"] == 1

    by_topic = client.get("/api/v1/posts", params={"topicId": topic.id}).json()["data"]
    assert [post["id"] for post in by_topic["items"]] == [test_post.id]


def test_keyword_wildcards_match_literally(client, db_session, test_post, test_user, site) -> None:
    db_session.add(Post(content="打折 100% 真实", author_id=test_user.id, site_id=site.id))
    db_session.flush()

    for keyword, expected in (("%", 1), ("_", 0), ("100%", 1), ("1_0", 0)):
        data = client.get("/api/v1/posts", params={"keyword": keyword}).json()["data"]
        assert data["total"] == expected, keyword


def test_list_posts_rejects_bad_page(client) -> None:
    response = client.get("/api/v1/posts", params={"page": 0})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == ErrorCode.INVALID_PARAMS


def test_create_post_requires_auth(client, site) -> None:
    response = client.post("/api/v1/posts", data={"content": "hello"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_create_post_creates_only_missing_topics(client, db_session, test_user, auth_headers, site) -> None:
    db_session.add(Topic(name="A"))
    db_session.flush()

    response = client.post(
        "/api/v1/posts",
        data={"content": "新学期", "topics": ["A", "B"]},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    post = response.json()["data"]
    assert [topic["name"] for topic in post["topics"]] == ["A", "B"]
    assert post["site_id"] == site.id
    assert post["author_id"] == test_user.id
    assert post["media_data"] is None

    assert db_session.query(Topic).filter_by(name="A").count() == 1
    assert db_session.query(Topic).filter_by(name="B").count() == 1
    assert db_session.query(PostTopic).filter_by(post_id=post["id"]).count() == 2


def test_create_post_with_comma_separated_topics(client, auth_headers, site) -> None:
    response = client.post(
        "/api/v1/posts",
        data={"content": "周末活动", "topics": "社团，运动, 社团"},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert [topic["name"] for topic in response.json()["data"]["topics"]] == ["社团", "运动"]


def test_create_post_with_images(client, auth_headers, site, storage) -> None:
    response = client.post(
        "/api/v1/posts",
        data={"content": "看看照片"},
        files=[
            ("images", ("one.png", b"first-image", "image/png")),
            ("images", ("two.JPG", b"second-image", "image/jpeg")),
        ],
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    media = response.json()["data"]["media_data"]
    assert len(media) == 2
    assert all(item["type"] == "image" for item in media)
    assert media[0]["key"].startswith("uploads/posts/")
    assert media[0]["key"].endswith(".png")
    assert media[1]["key"].endswith(".jpg")
    assert media[0]["url"] == f"{settings.storage_public_domain.rstrip('/')}/{media[0]['key']}"
    assert storage.calls == [media[0]["key"], media[1]["key"]]
    assert storage.objects[media[0]["key"]] == b"first-image"


def test_create_post_with_oversized_image(client, auth_headers, site, storage, db_session) -> None:
    oversized = b"x" * (settings.upload_max_file_size + 1)
    response = client.post(
        "/api/v1/posts",
        data={"content": "太大了"},
        files=[
            ("images", ("small.png", b"ok", "image/png")),
            ("images", ("big.png", oversized, "image/png")),
        ],
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == ErrorCode.FILE_TOO_LARGE
    assert storage.calls == []
    assert db_session.query(Post).count() == 0


def test_create_post_requires_content(client, auth_headers, site) -> None:
    response = client.post("/api/v1/posts", data={"content": "   "}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "帖子内容不能为空"


def test_create_post_for_missing_site(client, auth_headers) -> None:
    response = client.post(
        "/api/v1/posts",
        data={"content": "hello", "site_id": "999999"},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == ErrorCode.CONTENT_NOT_FOUND


def test_get_post(client, test_post) -> None:
    response = client.get(f"/api/v1/posts/{test_post.id}")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["id"] == test_post.id
    assert data["comment_count"] == 0
    assert data["site"]["name"] == "主站"


def test_get_missing_post(client) -> None:
    response = client.get("/api/v1/posts/999999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    body = response.json()
    assert body["code"] == ErrorCode.CONTENT_NOT_FOUND
    assert body["message"] == "帖子不存在"


def test_owner_updates_post_and_replaces_topics(client, test_post, auth_headers, db_session) -> None:
    response = client.put(
        f"/api/v1/posts/{test_post.id}",
        json={"content": "改过的内容", "topics": ["期末", "图书馆"]},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["content"] == "改过的内容"
    assert [topic["name"] for topic in data["topics"]] == ["期末", "图书馆"]
    assert db_session.query(PostTopic).filter_by(post_id=test_post.id).count() == 2


def test_update_without_topics_keeps_them(client, test_post, topic, auth_headers) -> None:
    response = client.put(
        f"/api/v1/posts/{test_post.id}",
        json={"content": "只改内容"},
        headers=auth_headers,
    )
    assert [item["id"] for item in response.json()["data"]["topics"]] == [topic.id]


def test_update_post_clears_topics(client, test_post, auth_headers) -> None:
    response = client.put(f"/api/v1/posts/{test_post.id}", json={"topics": []}, headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["topics"] == []


def test_other_user_cannot_update_post(client, test_post, other_auth_headers) -> None:
    response = client.put(
        f"/api/v1/posts/{test_post.id}",
        json={"content": "不是我的帖子"},
        headers=other_auth_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == ErrorCode.FORBIDDEN


def test_admin_can_update_any_post(client, test_post, admin_headers) -> None:
    response = client.put(
        f"/api/v1/posts/{test_post.id}",
        json={"content": "管理员修改"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK


def test_delete_post_leaves_no_orphans(client, test_post, test_user, auth_headers, db_session) -> None:
    db_session.add(PostComment(content="沙发", author_id=test_user.id, post_id=test_post.id))
    db_session.flush()
    post_id = test_post.id

    response = client.delete(f"/api/v1/posts/{post_id}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {"id": post_id}

    assert db_session.get(Post, post_id) is None
    assert db_session.query(PostTopic).filter_by(post_id=post_id).count() == 0
    assert db_session.query(PostComment).filter_by(post_id=post_id).count() == 0
    assert client.get(f"/api/v1/posts/{post_id}").status_code == status.HTTP_404_NOT_FOUND


def test_other_user_cannot_delete_post(client, test_post, other_auth_headers, db_session) -> None:
    response = client.delete(f"/api/v1/posts/{test_post.id}", headers=other_auth_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert db_session.query(Post).filter_by(id=test_post.id).count() == 1


def test_admin_can_delete_any_post(client, test_post, admin_headers) -> None:
    response = client.delete(f"/api/v1/posts/{test_post.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK


def test_comments_flow(client, test_post, auth_headers, other_auth_headers) -> None:
    first = client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "第一条评论"},
        headers=other_auth_headers,
    )
    assert first.status_code == status.HTTP_201_CREATED
    first_id = first.json()["data"]["id"]
    assert first.json()["data"]["author"]["nickname"] == "另一个用户"

    reply = client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "回复你", "parent_comment_id": first_id},
        headers=auth_headers,
    )
    assert reply.status_code == status.HTTP_201_CREATED
    assert reply.json()["data"]["parent_comment_id"] == first_id

    listing = client.get(f"/api/v1/posts/{test_post.id}/comments").json()["data"]
    assert listing["total"] == 2
    assert [item["content"] for item in listing["items"]] == ["第一条评论", "回复你"]

    detail = client.get(f"/api/v1/posts/{test_post.id}").json()["data"]
    assert detail["comment_count"] == 2


def test_reply_must_target_same_post(client, db_session, test_post, test_user, site, auth_headers) -> None:
    elsewhere = Post(content="别的帖子", author_id=test_user.id, site_id=site.id)
    db_session.add(elsewhere)
    db_session.flush()
    comment = PostComment(content="别处的评论", author_id=test_user.id, post_id=elsewhere.id)
    db_session.add(comment)
    db_session.flush()

    response = client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "串楼了", "parent_comment_id": comment.id},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_comment_on_missing_post(client, auth_headers) -> None:
    response = client.post("/api/v1/posts/999999/comments", json={"content": "?"}, headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_topic_picker(client, db_session) -> None:
    db_session.add_all([Topic(name="考研"), Topic(name="考试周"), Topic(name="美食")])
    db_session.flush()

    response = client.get("/api/v1/posts/topics", params={"keyword": "考", "pageSize": 1})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["aggregate"] == {"count": 2}
    assert len(data["datas"]) == 1
