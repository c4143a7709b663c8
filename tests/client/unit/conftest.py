import random
from dataclasses import dataclass, field

import pytest

from decksync.backend.store import InMemoryRoomStore
from decksync.client.config import SyncSettings
from decksync.client.models import CardSpec, DeckDefinition, HealthBar
from decksync.client.session import RoomSession
from decksync.client.transport import LocalTransport


@dataclass
class RecordingListener:
    renders: list = field(default_factory=list)
    logs: list = field(default_factory=list)
    reveals: list = field(default_factory=list)
    prompts: list = field(default_factory=list)
    results: list = field(default_factory=list)
    notices: list = field(default_factory=list)

    def on_render(self, reasons) -> None:
        self.renders.append(reasons)

    def on_log(self, entry) -> None:
        self.logs.append(entry)

    def on_reveal(self, event) -> None:
        self.reveals.append(event)

    def on_effect_prompt(self, request) -> None:
        self.prompts.append(request)

    def on_effect_result(self, result) -> None:
        self.results.append(result)

    def on_notice(self, notice) -> None:
        self.notices.append(notice)

    @property
    def notice_messages(self) -> list[str]:
        return [notice.message for notice in self.notices]

    @property
    def log_texts(self) -> list[str]:
        return [entry.text for entry in self.logs]


def make_deck(key: str = "knights", size: int = 10, intermediate: bool = False) -> DeckDefinition:
    return DeckDefinition(
        key=key,
        name=key.title(),
        cards=tuple(CardSpec(id=str(i), image=f"decks/{key}/1 x Card {i}.png") for i in range(size)),
        health_bars=(HealthBar(label="Life", start_value=20), HealthBar(label="Mana", start_value=3)),
        intermediate_zone="Limbo" if intermediate else None,
    )


@pytest.fixture
def settings() -> SyncSettings:
    return SyncSettings(
        server_url="http://testserver",
        readiness_attempts=2,
        readiness_interval_s=0.0,
        listener_timeout_s=0.05,
    )


@pytest.fixture
def transport() -> LocalTransport:
    return LocalTransport(store=InMemoryRoomStore())


@pytest.fixture
def make_session(transport, settings):
    counter = iter(range(1000))

    def factory() -> RoomSession:
        return RoomSession(
            transport,
            settings=settings,
            listener=RecordingListener(),
            rng=random.Random(next(counter)),
            background=False,
        )

    return factory


def pump(*sessions: RoomSession, transport: LocalTransport | None = None) -> None:
    """Deliver pending snapshots and drain every mailbox until nothing moves."""
    for _ in range(50):
        moved = transport.flush() if transport is not None else 0
        moved += sum(session.pump() for session in sessions)
        if not moved:
            return
    raise AssertionError("sessions did not settle")


def stored(transport: LocalTransport, code: str) -> dict:
    return transport.fetch_current(code)


@dataclass
class Table:
    transport: LocalTransport
    code: str
    host: RoomSession
    guests: list

    @property
    def guest(self) -> RoomSession:
        return self.guests[0]

    @property
    def everyone(self) -> list:
        return [self.host, *self.guests]

    def settle(self) -> None:
        pump(*self.everyone, transport=self.transport)

    def document(self) -> dict:
        return stored(self.transport, self.code)


def open_table(transport, make_session, guests: tuple[str, ...] = ("Bob",)) -> Table:
    host = make_session()
    code = host.host_room("Alice")
    assert code is not None
    table = Table(transport=transport, code=code, host=host, guests=[])
    for name in guests:
        guest = make_session()
        assert guest.join_room(code, name)
        table.guests.append(guest)
        table.settle()
    table.settle()
    return table


@pytest.fixture
def table(transport, make_session) -> Table:
    return open_table(transport, make_session)


@pytest.fixture
def deck() -> DeckDefinition:
    return make_deck()
