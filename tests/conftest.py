from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from claimserve.app import create_app
from claimserve.config import Settings
from claimserve.models import ClaimRecord, FileLookup, FileRecord, NotFound
from claimserve.renderer import PageRenderer

CLAIM_ID = "a" * 39 + "1"
OTHER_CLAIM_ID = "a" * 39 + "2"
CHANNEL_ID = "c" * 40


class FakeClaimIndex:
    """In-memory claim index that records every lookup it receives."""

    def __init__(self):
        self.channels: Dict[str, List[str]] = {}   # channel name -> long ids
        self.claims: Dict[str, ClaimRecord] = {}   # claim id -> record
        self.files: Dict[str, FileRecord] = {}     # claim id -> file
        self.calls: List[Tuple] = []

    def add_channel(self, name: str, channel_id: str) -> None:
        self.channels.setdefault(name, []).append(channel_id)

    def add_claim(self, record: ClaimRecord) -> None:
        self.claims[record.claim_id] = record

    async def get_long_channel_id(self, channel_name, channel_id) -> Optional[str]:
        self.calls.append(("get_long_channel_id", channel_name, channel_id))
        ids = self.channels.get(channel_name, [])
        if channel_id is None:
            return ids[0] if ids else None
        matches = [i for i in ids if i.startswith(channel_id)]
        return matches[0] if matches else None

    async def get_short_channel_id(self, long_channel_id, channel_name) -> str:
        self.calls.append(("get_short_channel_id", long_channel_id, channel_name))
        return long_channel_id[:1]

    async def get_channel_claims(self, long_channel_id) -> List[ClaimRecord]:
        self.calls.append(("get_channel_claims", long_channel_id))
        return [c for c in self.claims.values() if c.certificate_id == long_channel_id]

    async def get_claim_id_in_channel(self, long_channel_id, claim_name) -> Optional[str]:
        self.calls.append(("get_claim_id_in_channel", long_channel_id, claim_name))
        for claim in self.claims.values():
            if claim.certificate_id == long_channel_id and claim.name == claim_name:
                return claim.claim_id
        return None

    async def get_long_claim_id(self, name, short_id) -> Optional[str]:
        self.calls.append(("get_long_claim_id", name, short_id))
        for claim in self.claims.values():
            if claim.name == name and claim.claim_id.startswith(short_id):
                return claim.claim_id
        return None

    async def get_winning_claim_id(self, name) -> Optional[str]:
        self.calls.append(("get_winning_claim_id", name))
        candidates = [c for c in self.claims.values() if c.name == name]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.effective_amount).claim_id

    async def get_claim_record(self, claim_id, name) -> Optional[ClaimRecord]:
        self.calls.append(("get_claim_record", claim_id, name))
        record = self.claims.get(claim_id)
        return record if record and record.name == name else None

    async def get_short_claim_id(self, long_id, name) -> str:
        self.calls.append(("get_short_claim_id", long_id, name))
        return long_id[:1]

    async def get_local_file_record(self, claim_id, name) -> FileLookup:
        self.calls.append(("get_local_file_record", claim_id, name))
        return self.files.get(claim_id, NotFound.file)

    async def save_claims(self, claims) -> None:
        self.calls.append(("save_claims", len(claims)))
        for claim in claims:
            self.add_claim(claim)

    async def save_file(self, record) -> None:
        self.calls.append(("save_file", record.claim_id, record.name))
        self.files[record.claim_id] = record

    def called(self, method: str) -> bool:
        return any(call[0] == method for call in self.calls)


class RecordingRenderer(PageRenderer):
    """PageRenderer that remembers which views were rendered."""

    def __init__(self):
        super().__init__("http://test")
        self.rendered: List[Tuple[str, object]] = []

    def show(self, claim, short_id):
        self.rendered.append(("show", claim))
        return super().show(claim, short_id)

    def show_lite(self, claim, short_id):
        self.rendered.append(("showLite", claim))
        return super().show_lite(claim, short_id)

    def channel(self, page):
        self.rendered.append(("channel", page))
        return super().channel(page)

    def no_channel(self):
        self.rendered.append(("noChannel", None))
        return super().no_channel()

    def no_claim(self):
        self.rendered.append(("noClaim", None))
        return super().no_claim()

    @property
    def views(self) -> List[str]:
        return [view for view, _ in self.rendered]


class FakeDaemon:
    def __init__(self):
        self.claim_list_result: dict = {"claims": []}
        self.resolve_result: dict = {}
        self.get_result: dict = {}
        self.error: Optional[Exception] = None

    async def claim_list(self, name):
        if self.error:
            raise self.error
        return self.claim_list_result

    async def resolve(self, uri):
        if self.error:
            raise self.error
        return self.resolve_result

    async def get_claim(self, name, claim_id):
        if self.error:
            raise self.error
        return self.get_result


def make_claim(claim_id: str = CLAIM_ID, name: str = "myvideo", **kwargs) -> ClaimRecord:
    kwargs.setdefault("title", f"Title of {name}")
    kwargs.setdefault("content_type", "video/mp4")
    return ClaimRecord(claim_id=claim_id, name=name, **kwargs)


@pytest.fixture()
def index():
    return FakeClaimIndex()


@pytest.fixture()
def renderer():
    return RecordingRenderer()


@pytest.fixture()
def daemon():
    return FakeDaemon()


@pytest.fixture()
def client(index, renderer, daemon, tmp_path):
    settings = Settings(db_path=tmp_path / "claims.db", site_host="http://test")
    app = create_app(settings=settings, index=index, daemon=daemon, renderer=renderer)
    return TestClient(app)
