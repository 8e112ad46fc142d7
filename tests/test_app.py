import re

from fastapi.testclient import TestClient

from claimserve import db
from claimserve.app import create_app
from claimserve.config import Settings
from claimserve.daemon import DaemonError, DaemonUnavailable
from claimserve.models import FileRecord

from conftest import CHANNEL_ID, CLAIM_ID, OTHER_CLAIM_ID, make_claim


def _seed_channel(index, n_claims=1):
    index.add_channel("@channel", CHANNEL_ID)
    index.add_claim(make_claim(CLAIM_ID, "myvideo", certificate_id=CHANNEL_ID))
    for i in range(n_claims - 1):
        index.add_claim(make_claim(f"{i:040d}", f"clip{i}", certificate_id=CHANNEL_ID))


def test_channel_claim_with_html_accept_renders_lite_page(client, index, renderer):
    _seed_channel(index)
    response = client.get(
        f"/@channel:{CHANNEL_ID}/myvideo.mp4", headers={"accept": "text/html"}
    )
    assert response.status_code == 200
    assert renderer.views == ["showLite"]
    assert ("get_long_channel_id", "@channel", CHANNEL_ID) in index.calls
    assert ("get_claim_id_in_channel", CHANNEL_ID, "myvideo") in index.calls
    assert not index.called("get_local_file_record")
    assert 'property="og:title"' in response.text


def test_channel_claim_without_extension_renders_full_page(client, index, renderer):
    _seed_channel(index)
    response = client.get("/@channel/myvideo")
    assert response.status_code == 200
    assert renderer.views == ["show"]
    assert "Title of myvideo" in response.text


def test_unknown_channel_renders_no_channel(client, index, renderer):
    response = client.get("/@nobody/myvideo")
    assert response.status_code == 200
    assert renderer.views == ["noChannel"]


def test_unknown_claim_in_channel_renders_no_claim(client, index, renderer):
    _seed_channel(index)
    response = client.get("/@channel/nothing")
    assert response.status_code == 200
    assert renderer.views == ["noClaim"]


def test_serve_without_local_file_redirects_to_get_claim(client, index):
    index.add_claim(make_claim(CLAIM_ID, "myvideo"))
    response = client.get(f"/{CLAIM_ID}/myvideo.mp4", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == f"/api/get_claim/myvideo/{CLAIM_ID}"


def test_serve_streams_local_file(client, index, tmp_path):
    asset = tmp_path / "myvideo.mp4"
    asset.write_bytes(b"not really a video")
    index.files[CLAIM_ID] = FileRecord(
        claim_id=CLAIM_ID, name="myvideo", file_path=str(asset), file_type="video/mp4"
    )
    response = client.get(f"/{CLAIM_ID}/myvideo.mp4", headers={"accept": "video/mp4"})
    assert response.status_code == 200
    assert response.content == b"not really a video"
    assert response.headers["content-type"] == "video/mp4"


def test_legacy_url_order_is_swapped(client, index, renderer):
    index.add_claim(make_claim(CLAIM_ID, "myvideo"))
    response = client.get(f"/myvideo/{CLAIM_ID}")
    assert response.status_code == 200
    assert renderer.views == ["show"]
    assert ("get_claim_record", CLAIM_ID, "myvideo") in index.calls


def test_short_id_is_expanded(client, index, renderer):
    index.add_claim(make_claim(CLAIM_ID, "myvideo"))
    response = client.get("/a/myvideo")
    assert response.status_code == 200
    assert renderer.views == ["show"]
    assert ("get_long_claim_id", "myvideo", "a") in index.calls


def test_preview_patch_name(client, index, renderer):
    index.add_claim(make_claim(CLAIM_ID, "clip"))
    response = client.get(f"/{CLAIM_ID}/clip.mp4%3Esmall.jpg", headers={"accept": "text/html"})
    assert response.status_code == 200
    assert renderer.views == ["showLite"]
    assert ("get_claim_record", CLAIM_ID, "clip") in index.calls


def test_single_segment_serves_winning_claim(client, index, renderer):
    index.add_claim(make_claim(CLAIM_ID, "myvideo", effective_amount=1))
    index.add_claim(make_claim(OTHER_CLAIM_ID, "myvideo", effective_amount=9))
    response = client.get("/myvideo")
    assert response.status_code == 200
    assert renderer.views == ["show"]
    assert ("get_claim_record", OTHER_CLAIM_ID, "myvideo") in index.calls


def test_single_segment_is_never_swapped(client, index, renderer):
    response = client.get("/a")
    assert response.status_code == 200
    assert renderer.views == ["noClaim"]
    assert ("get_winning_claim_id", "a") in index.calls


def test_single_segment_unknown_claim(client, renderer):
    response = client.get("/nothing.mp4")
    assert response.status_code == 200
    assert renderer.views == ["noClaim"]


def test_empty_channel_page(client, index, renderer):
    index.add_channel("@empty", "e" * 40)
    response = client.get("/@empty")
    assert response.status_code == 200
    assert renderer.views == ["channel"]
    page = renderer.rendered[0][1]
    assert page.total_pages == 0
    assert page.claims == []
    assert page.previous_page is None
    assert page.next_page is None
    assert page.current_page == 1


def test_channel_page_is_paginated(client, index, renderer):
    _seed_channel(index, n_claims=25)
    response = client.get(f"/@channel:{CHANNEL_ID[:1]}?p=3")
    assert response.status_code == 200
    page = renderer.rendered[0][1]
    assert len(page.claims) == 5
    assert page.previous_page == 2
    assert page.current_page == 3
    assert page.next_page is None
    assert page.total_pages == 3
    assert page.total_results == 25
    assert page.long_channel_id == CHANNEL_ID
    assert page.short_channel_id == "c"
    assert "?p=2" in response.text


def test_unknown_channel_page(client, renderer):
    response = client.get("/@nobody")
    assert response.status_code == 200
    assert renderer.views == ["noChannel"]


def test_claim_list_caches_claims(client, index, daemon):
    daemon.claim_list_result = {
        "claims": [{"claim_id": CLAIM_ID, "name": "cat", "height": 1, "effective_amount": 1}]
    }
    response = client.get("/api/claim_list/cat")
    assert response.status_code == 200
    assert response.json() == daemon.claim_list_result
    assert CLAIM_ID in index.claims


def test_resolve_passthrough(client, daemon):
    daemon.resolve_result = {"claim": {"name": "cat"}}
    response = client.get("/api/resolve/cat")
    assert response.status_code == 200
    assert response.json() == {"claim": {"name": "cat"}}


def test_get_claim_records_and_streams_file(client, index, daemon, tmp_path):
    asset = tmp_path / "cat.gif"
    asset.write_bytes(b"GIF89a")
    daemon.get_result = {"download_path": str(asset), "mime_type": "image/gif"}
    response = client.get(f"/api/get_claim/cat/{CLAIM_ID}")
    assert response.status_code == 200
    assert response.content == b"GIF89a"
    assert index.files[CLAIM_ID].file_path == str(asset)


def test_get_claim_without_file(client, daemon):
    daemon.get_result = {}
    response = client.get(f"/api/get_claim/cat/{CLAIM_ID}")
    assert response.status_code == 404


def test_daemon_unavailable_is_503(client, daemon):
    daemon.error = DaemonUnavailable("refused")
    response = client.get("/api/resolve/cat")
    assert response.status_code == 503
    assert response.json() == {
        "success": False,
        "message": "Connection refused. The daemon may not be running.",
    }


def test_daemon_error_is_502(client, daemon):
    daemon.error = DaemonError("resolve: bad uri")
    response = client.get("/api/resolve/cat")
    assert response.status_code == 502
    assert response.json()["message"] == "resolve: bad uri"


def test_unexpected_errors_become_500(index, renderer, daemon, tmp_path):
    class BrokenIndex(type(index)):
        async def get_winning_claim_id(self, name):
            raise RuntimeError("index down")

    settings = Settings(db_path=tmp_path / "claims.db")
    app = create_app(settings=settings, index=BrokenIndex(), daemon=daemon, renderer=renderer)
    response = TestClient(app, raise_server_exceptions=False).get("/myvideo")
    assert response.status_code == 500
    assert response.json()["success"] is False


def test_default_app_uses_sqlite_index(tmp_path):
    settings = Settings(db_path=tmp_path / "claims.db")
    app = create_app(settings=settings)
    response = TestClient(app).get("/@nobody")
    assert response.status_code == 200
    assert "No matching channel" in response.text
    assert settings.db_path.exists()


def _link(pattern, html):
    match = re.search(pattern, html)
    assert match, pattern
    return match.group(1).replace("http://test", "")


def test_links_on_show_page_resolve_to_the_same_claim(tmp_path):
    first_id = "a1" + "0" * 38
    second_id = "a2" + "0" * 38
    settings = Settings(db_path=tmp_path / "claims.db", site_host="http://test")
    app = create_app(settings=settings)
    db.save_claims(
        settings.db_path,
        [make_claim(first_id, "myvideo", height=1), make_claim(second_id, "myvideo", height=2)],
    )
    client = TestClient(app)

    page = client.get(f"/{first_id}/myvideo")
    assert page.status_code == 200
    og_url = _link(r'property="og:url" content="([^"]+)"', page.text)
    media_src = _link(r'<video controls src="([^"]+)"', page.text)
    assert og_url == "/a1/myvideo"
    assert media_src == "/a1/myvideo.mp4"

    shared = client.get(og_url)
    assert shared.status_code == 200
    assert "Title of myvideo" in shared.text
    assert "No matching claim" not in shared.text

    asset = client.get(media_src, follow_redirects=False)
    assert asset.status_code == 307
    assert asset.headers["location"] == f"/api/get_claim/myvideo/{first_id}"


def test_legacy_swap_still_needs_a_single_character_id(client, index, renderer):
    index.add_claim(make_claim(CLAIM_ID, "myvideo"))
    response = client.get("/myvideo/a")
    assert response.status_code == 200
    assert renderer.views == ["show"]
    assert ("get_long_claim_id", "myvideo", "a") in index.calls
