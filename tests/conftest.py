from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from urllib.parse import parse_qs, urlencode

import httpx
import pytest
from nacl.public import Box, PrivateKey
from sqlalchemy.orm import sessionmaker

from xcbot.db.session import init_db, make_engine
from xcbot.services import identity
from xcbot.services.messaging import EncryptedMessage, IncomingMessage
from xcbot.services.threema import ThreemaClient, ThreemaConfig, crypto

GATEWAY_ID = "*XCBOT01"
GATEWAY_SECRET = "s3cr3t"


class FakeGateway:
    """MessagingGateway that keeps everything in memory. Encrypted messages carry the plaintext."""

    def __init__(self, public_keys: dict[str, bytes] | None = None) -> None:
        self.public_keys = public_keys or {}
        self.lookups: list[str] = []
        self.sent: list[tuple[str, EncryptedMessage]] = []
        self.fail_send_to: set[str] = set()

    def decode_incoming(self, raw: bytes) -> IncomingMessage:
        raise NotImplementedError

    def decrypt(self, message: IncomingMessage, public_key: bytes) -> bytes:
        raise NotImplementedError

    def lookup_public_key(self, identity: str) -> bytes:
        self.lookups.append(identity)
        if identity not in self.public_keys:
            raise LookupError(identity)
        return self.public_keys[identity]

    def encrypt_text(self, text: str, public_key: bytes) -> EncryptedMessage:
        return EncryptedMessage(nonce=public_key[:24], box=b"text:" + text.encode("utf-8"))

    def encrypt_image(self, image: bytes, thumbnail: bytes, caption: str, public_key: bytes) -> EncryptedMessage:
        return EncryptedMessage(nonce=public_key[:24], box=b"image:" + caption.encode("utf-8"))

    def send(self, identity: str, message: EncryptedMessage) -> str:
        if identity in self.fail_send_to:
            raise RuntimeError(f"send to {identity} failed")
        self.sent.append((identity, message))
        return f"msg{len(self.sent)}"

    def sent_to(self, identity: str) -> list[bytes]:
        return [m.box for to, m in self.sent if to == identity]


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'xc-bot.sqlite3'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def identity_executor(monkeypatch):
    """Fresh key-caching pool per test; teardown waits for pending background writes."""
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="test_pubkey_cache")
    monkeypatch.setattr(identity, "_executor", executor)
    yield executor
    executor.shutdown(wait=True)


@pytest.fixture
def fake_gateway():
    return FakeGateway(
        public_keys={
            "ECHOECHO": bytes(range(32)),
            "USER0001": bytes([1]) * 32,
            "USER0002": bytes([2]) * 32,
            "USER0003": bytes([3]) * 32,
        }
    )


@pytest.fixture
def gateway_key():
    return PrivateKey.generate()


@pytest.fixture
def threema_config(gateway_key):
    return ThreemaConfig(
        gateway_id=GATEWAY_ID,
        secret=GATEWAY_SECRET,
        private_key=bytes(gateway_key),
        base_url="https://msgapi.test",
    )


@pytest.fixture
def make_threema_client(threema_config):
    def _make(transport) -> ThreemaClient:
        return ThreemaClient(threema_config, timeout=5.0, transport=transport)

    return _make


def make_callback(gateway_pk, sender_sk, payload, *, sender="ECHOECHO", to=GATEWAY_ID, nickname="Hans", secret=GATEWAY_SECRET):
    """Form body the Threema Gateway posts for an incoming message."""
    box = Box(sender_sk, gateway_pk)
    nonce = b"\x05" * 24
    ciphertext = box.encrypt(crypto.pad(payload), nonce).ciphertext
    fields = {
        "from": sender,
        "to": to,
        "messageId": "0123456789abcdef",
        "date": "1623500000",
        "nonce": nonce.hex(),
        "box": ciphertext.hex(),
    }
    fields["mac"] = crypto.callback_mac(secret, *fields.values())
    if nickname:
        fields["nickname"] = nickname
    return urlencode(fields).encode("ascii")


class GatewayApi:
    """Records requests and answers like msgapi.threema.ch."""

    def __init__(self, public_keys: dict[str, bytes] | None = None) -> None:
        self.public_keys = public_keys or {}
        self.requests: list[httpx.Request] = []
        self.blobs: list[bytes] = []
        self.status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status)
        path = request.url.path
        if path.startswith("/pubkeys/"):
            identity = path.rsplit("/", 1)[1]
            if identity not in self.public_keys:
                return httpx.Response(404)
            return httpx.Response(200, text=self.public_keys[identity].hex())
        if path == "/send_e2e":
            return httpx.Response(200, text="a1b2c3d4e5f60708")
        if path == "/upload_blob":
            self.blobs.append(_multipart_blob(request))
            return httpx.Response(200, text=f"blob{len(self.blobs):028d}")
        return httpx.Response(404)

    def sent_forms(self) -> list[dict[str, str]]:
        return [
            {k: v[0] for k, v in parse_qs(r.content.decode("ascii")).items()}
            for r in self.requests
            if r.url.path == "/send_e2e"
        ]


def _multipart_blob(request: httpx.Request) -> bytes:
    body = request.read()
    boundary = request.headers["content-type"].split("boundary=")[1].encode("ascii")
    part = body.split(b"--" + boundary)[1]
    return part.split(b"\r\n\r\n", 1)[1].rsplit(b"\r\n", 1)[0]


@pytest.fixture
def sender_key():
    return PrivateKey.generate()


@pytest.fixture
def api(sender_key):
    return GatewayApi({"ECHOECHO": bytes(sender_key.public_key)})

