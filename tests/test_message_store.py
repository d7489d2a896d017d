import asyncio
import json
import re

from lanchat.messages import Message, MessageStore


def run(coro):
    return asyncio.run(coro)


def test_message_gets_id_and_timestamp():
    message = Message(user="alice", message="hi")

    assert re.fullmatch(r"\d{6}", message.id)
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", message.timestamp)


def test_missing_file_starts_empty(tmp_path):
    store = MessageStore(tmp_path / "messages.json")

    async def scenario():
        await store.load()
        return await store.list_messages()

    assert run(scenario()) == []


def test_add_persists_immediately(tmp_path):
    path = tmp_path / "data" / "messages.json"
    store = MessageStore(path)

    async def scenario():
        await store.load()
        return await store.add("alice", "hello")

    message = run(scenario())

    on_disk = json.loads(path.read_text())
    assert on_disk == {"messages": [message.to_dict()]}


def test_history_survives_reload(tmp_path):
    path = tmp_path / "messages.json"

    async def write():
        store = MessageStore(path)
        await store.load()
        await store.add("alice", "one")
        await store.add("bob", "two")

    async def read():
        store = MessageStore(path)
        await store.load()
        return await store.list_messages()

    run(write())
    messages = run(read())

    assert [(m.user, m.message) for m in messages] == [("alice", "one"), ("bob", "two")]


def test_history_is_trimmed_to_newest(tmp_path):
    store = MessageStore(tmp_path / "messages.json", max_messages=3)

    async def scenario():
        await store.load()
        for i in range(5):
            await store.add("alice", f"msg {i}")
        return await store.list_messages()

    messages = run(scenario())
    assert [m.message for m in messages] == ["msg 2", "msg 3", "msg 4"]


def test_list_with_limit(tmp_path):
    store = MessageStore(tmp_path / "messages.json")

    async def scenario():
        await store.load()
        for i in range(4):
            await store.add("alice", f"msg {i}")
        return await store.list_messages(2), await store.list_messages(10)

    recent, everything = run(scenario())
    assert [m.message for m in recent] == ["msg 2", "msg 3"]
    assert len(everything) == 4


def test_clear_empties_file(tmp_path):
    path = tmp_path / "messages.json"
    store = MessageStore(path)

    async def scenario():
        await store.load()
        await store.add("alice", "hello")
        await store.clear()
        return await store.count()

    assert run(scenario()) == 0
    assert json.loads(path.read_text()) == {"messages": []}


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "messages.json"
    path.write_text("{not json")
    store = MessageStore(path)

    async def scenario():
        await store.load()
        return await store.count()

    assert run(scenario()) == 0
