import asyncio
import random

import pytest

from core.exceptions import (
    ClassroomNotFound,
    EditNotAllowed,
    SessionNotFound,
    StoreUnavailable,
    StudentNotFound,
    ValidationError,
)
from core.selection_engine import SelectionConfig, SelectionEngine
from core.session_controller import EditContext, SessionController
from core.session_registry import SessionRegistry
from models import SelectionPhase
from schemas import ClassroomResponse, StudentResponse


def _student(student_id, first, last, classroom_id="c1"):
    return StudentResponse(id=student_id, first_name=first, last_name=last, classroom_id=classroom_id)


class GatedStore:
    """In-memory store whose lookups can be held open to reorder responses"""

    def __init__(self):
        self.classroom = ClassroomResponse(id="c1", grade=7, section="A")
        self.roster = []
        self.gates = []
        self.fail_next = False
        self.deleted = []

    async def find_classroom_by_section(self, section):
        gate = self.gates.pop(0) if self.gates else None
        if gate is not None:
            await gate.wait()
        if self.fail_next:
            self.fail_next = False
            raise StoreUnavailable("connection reset")
        if section.lower() != self.classroom.section.lower():
            raise ClassroomNotFound(section)
        return self.classroom

    async def list_students_by_classroom(self, classroom_id):
        return list(self.roster)

    async def update_student(self, student_id, fields):
        for index, student in enumerate(self.roster):
            if student.id == student_id:
                self.roster[index] = student.model_copy(update=fields)
                return self.roster[index]
        raise StudentNotFound(student_id)

    async def delete_student(self, student_id):
        self.deleted.append(student_id)
        self.roster = [s for s in self.roster if s.id != student_id]


def _controller(store, config=None, seed=11):
    config = config or SelectionConfig(tick_interval=0, tick_count=5, reveal_delay=0)
    engine = SelectionEngine(config, rng=random.Random(seed))
    return SessionController(store, engine=engine, section="A")


def test_latest_load_wins_when_older_response_arrives_last():
    store = GatedStore()
    controller = _controller(store)

    async def scenario():
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        store.gates = [first_gate, second_gate]

        store.roster = [_student("s1", "Amy", "Adams")]
        first = asyncio.create_task(controller.load())
        await asyncio.sleep(0)

        store.roster = [_student("s1", "Amy", "Adams"), _student("s2", "Zoe", "Young")]
        second = asyncio.create_task(controller.load())
        await asyncio.sleep(0)

        second_gate.set()
        assert await second is True
        # The older request resolves afterwards but must not overwrite
        store.roster = []
        first_gate.set()
        assert await first is False

    asyncio.run(scenario())
    assert controller.candidates == ("s1", "s2")
    assert controller.loading is False


def test_stale_load_resolving_first_is_discarded():
    store = GatedStore()
    controller = _controller(store)

    async def scenario():
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        store.gates = [first_gate, second_gate]
        first = asyncio.create_task(controller.load())
        await asyncio.sleep(0)
        second = asyncio.create_task(controller.load())
        await asyncio.sleep(0)

        store.roster = [_student("s9", "Old", "Data")]
        first_gate.set()
        assert await first is False
        assert controller.candidates == ()
        assert controller.loading is True

        store.roster = [_student("s1", "Amy", "Adams")]
        second_gate.set()
        assert await second is True

    asyncio.run(scenario())
    assert controller.candidates == ("s1",)
    assert controller.loading is False


def test_actions_accepted_while_load_is_in_flight():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams"), _student("s2", "Zoe", "Young")]
    controller = _controller(store)

    async def scenario():
        await controller.load()
        gate = asyncio.Event()
        store.gates = [gate]
        pending = asyncio.create_task(controller.load())
        await asyncio.sleep(0)
        assert controller.loading is True

        assert controller.on_start_randomizer() is True
        await controller.engine.wait()
        assert controller.engine.winner in {"s1", "s2"}

        controller.on_reset()
        assert controller.engine.phase is SelectionPhase.IDLE

        gate.set()
        await pending

    asyncio.run(scenario())


def test_failed_load_keeps_previous_roster():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams")]
    controller = _controller(store)

    async def scenario():
        await controller.load()
        store.fail_next = True
        with pytest.raises(StoreUnavailable):
            await controller.load()

    asyncio.run(scenario())
    assert controller.candidates == ("s1",)
    assert controller.classroom_id == "c1"
    assert controller.loading is False


def test_load_unknown_section():
    controller = SessionController(GatedStore())

    async def scenario():
        with pytest.raises(ValidationError):
            await controller.load()
        with pytest.raises(ClassroomNotFound):
            await controller.load("Z")

    asyncio.run(scenario())
    assert controller.candidates == ()
    assert controller.loading is False


def test_start_without_candidates_does_nothing():
    controller = _controller(GatedStore())

    assert controller.on_start_randomizer() is False
    assert controller.engine.phase is SelectionPhase.IDLE
    assert not controller.engine.has_pending_timer


def test_winner_flow_and_visibility_flags():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams"), _student("s2", "Zoe", "Young")]
    controller = _controller(store)

    async def scenario():
        await controller.load()
        assert controller.on_winner_ready() is False

        assert controller.on_start_randomizer() is True
        assert controller.on_start_randomizer() is False
        await controller.engine.wait()

        assert controller.engine.phase is SelectionPhase.SETTLED
        assert controller.winner_visible is True
        assert controller.winner_student.id == controller.engine.winner

        controller.on_close_winner()
        assert controller.winner_visible is False
        assert controller.engine.phase is SelectionPhase.SETTLED
        assert controller.engine.winner is not None

        assert controller.on_winner_ready() is True
        controller.on_reset()
        assert controller.winner_visible is False
        assert controller.engine.winner is None
        assert controller.winner_student is None

    asyncio.run(scenario())


def test_edit_rejected_while_running_allowed_when_settled():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams"), _student("s2", "Zoe", "Young")]
    config = SelectionConfig(tick_interval=0.001, tick_count=5, reveal_delay=0)
    controller = _controller(store, config)

    async def scenario():
        await controller.load()
        controller.on_start_randomizer()
        with pytest.raises(EditNotAllowed):
            controller.on_edit_student("s1")
        assert controller.edit_context is None

        await controller.engine.wait()
        assert controller.on_edit_student("s1") == EditContext(student_id="s1")

        with pytest.raises(StudentNotFound):
            controller.on_edit_student("ghost")

        controller.on_close_edit()
        assert controller.edit_context is None

    asyncio.run(scenario())


def test_state_version_increases_on_changes():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams")]
    controller = _controller(store)

    async def scenario():
        versions = [controller.state_version]
        await controller.load()
        versions.append(controller.state_version)
        controller.on_start_randomizer()
        await controller.engine.wait()
        versions.append(controller.state_version)
        controller.on_reset()
        versions.append(controller.state_version)
        return versions

    versions = asyncio.run(scenario())
    assert versions == sorted(versions)
    assert len(set(versions)) == len(versions)


def test_classroom_scenario_with_real_store(store, fast_config):
    async def scenario():
        await store.create_classroom(7, "A")
        controller = SessionController(
            store,
            engine=SelectionEngine(fast_config, rng=random.Random(5)),
            section="a",
        )
        await controller.load()
        assert controller.candidates == ()

        zoe = await controller.add_student("Zoe", "Young")
        amy = await controller.add_student("Amy", "Adams")
        assert controller.candidates == (amy.id, zoe.id)

        highlights = []
        controller.engine.on_highlight(lambda run: highlights.append(run.current_highlight))
        controller.on_start_randomizer()
        await controller.engine.wait()

        assert controller.engine.winner in {amy.id, zoe.id}
        assert set(highlights) <= {amy.id, zoe.id}
        assert controller.winner_visible is True

        controller.on_edit_student(zoe.id)
        renamed = await controller.save_edit({"first_name": "Zoey"})
        assert (renamed.first_name, renamed.last_name) == ("Zoey", "Young")
        assert controller.edit_context is None
        assert [s.first_name for s in controller.students] == ["Amy", "Zoey"]

        await controller.delete_student(amy.id)
        assert controller.candidates == (zoe.id,)

    asyncio.run(scenario())


def test_save_edit_requires_open_context(store):
    controller = SessionController(store, section="A")

    async def scenario():
        with pytest.raises(ValidationError):
            await controller.save_edit({"first_name": "X"})
        with pytest.raises(ValidationError):
            await controller.add_student("Amy", "Adams")

    asyncio.run(scenario())


def test_saving_an_edit_is_rejected_once_a_run_starts():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams"), _student("s2", "Zoe", "Young")]
    config = SelectionConfig(tick_interval=0.001, tick_count=5, reveal_delay=0)
    controller = _controller(store, config)

    async def scenario():
        await controller.load()
        controller.on_edit_student("s1")
        assert controller.on_start_randomizer() is True

        with pytest.raises(EditNotAllowed):
            await controller.save_edit({"first_name": "Changed"})
        assert controller.edit_context == EditContext(student_id="s1")
        assert controller.students[0].first_name == "Amy"

        await controller.engine.wait()
        saved = await controller.save_edit({"first_name": "Changed"})
        assert saved.first_name == "Changed"
        assert controller.edit_context is None

    asyncio.run(scenario())


def test_delete_is_limited_to_the_session_roster():
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams")]
    controller = _controller(store)

    async def scenario():
        await controller.load()
        with pytest.raises(StudentNotFound):
            await controller.delete_student("other-classroom-student")
        assert store.deleted == []

        await controller.delete_student("s1")
        assert store.deleted == ["s1"]
        assert controller.candidates == ()

    asyncio.run(scenario())


def test_concurrent_opens_share_one_controller(fast_config):
    store = GatedStore()
    store.roster = [_student("s1", "Amy", "Adams")]
    registry = SessionRegistry(store, fast_config)

    async def scenario():
        # Both first loads are held open so the opens overlap
        gate = asyncio.Event()
        store.gates = [gate, gate]
        opening = asyncio.gather(registry.open("A"), registry.open("a"))
        await asyncio.sleep(0)
        gate.set()
        return await opening

    first, second = asyncio.run(scenario())
    assert first is second
    assert registry.get("A") is first
    assert first.candidates == ("s1",)


def test_failed_first_open_is_not_registered(fast_config):
    registry = SessionRegistry(GatedStore(), fast_config)

    async def scenario():
        with pytest.raises(ClassroomNotFound):
            await registry.open("Q")

    asyncio.run(scenario())
    with pytest.raises(SessionNotFound):
        registry.get("Q")


def test_failed_reload_keeps_an_open_session(fast_config):
    store = GatedStore()
    registry = SessionRegistry(store, fast_config)

    async def scenario():
        controller = await registry.open("A")
        store.fail_next = True
        with pytest.raises(StoreUnavailable):
            await registry.open("A")
        return controller

    controller = asyncio.run(scenario())
    assert registry.get("a") is controller
