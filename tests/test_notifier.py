from hailstorm.messages import AgentMessage, AgentUpdate
from hailstorm.notifier import UpdatesNotifier


def test_add_updates_deduplicates_by_update_id():
    notifier = UpdatesNotifier()
    first = AgentUpdate(agent_id=1, update_id=5)
    second = AgentUpdate(agent_id=2, update_id=5)
    notifier.add_updates([first])
    notifier.add_updates([second])
    assert notifier.frames == {5: second}


def test_flush_sends_to_all_clients_and_drains():
    notifier = UpdatesNotifier()
    got_a, got_b = [], []
    notifier.register_sender(got_a.append)
    notifier.register_sender(got_b.append)
    updates = [AgentUpdate(agent_id=1, update_id=1), AgentUpdate(agent_id=2, update_id=2)]
    notifier.add_updates(updates)
    message = notifier.flush()
    assert message.updates == updates
    assert got_a == [AgentMessage(updates)]
    assert got_b == [AgentMessage(updates)]
    assert notifier.frames == {}


def test_second_flush_sends_empty_message():
    notifier = UpdatesNotifier()
    got = []
    notifier.register_sender(got.append)
    notifier.add_updates([AgentUpdate(agent_id=1, update_id=1)])
    notifier.flush()
    notifier.flush()
    assert got[1] == AgentMessage([])


def test_failing_sender_does_not_block_others():
    notifier = UpdatesNotifier()
    got = []

    def broken(_message):
        raise RuntimeError("boom")

    notifier.register_sender(broken)
    notifier.register_sender(got.append)
    upd = AgentUpdate(agent_id=1, update_id=1)
    notifier.add_updates([upd])
    notifier.flush()
    assert got == [AgentMessage([upd])]


def test_flush_without_clients_drains_frames():
    notifier = UpdatesNotifier()
    upd = AgentUpdate(agent_id=1, update_id=1)
    notifier.add_updates([upd])
    assert notifier.flush().updates == [upd]
    assert notifier.frames == {}