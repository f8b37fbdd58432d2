from controller import ErrorKind, VoiceSessionMachine, VoiceState


def record(machine):
    moves = []
    machine.add_observer(lambda session, previous, reason: moves.append((previous, session.state, reason)))
    return moves


def test_full_cycle():
    machine = VoiceSessionMachine()
    moves = record(machine)
    session = machine.press()
    assert machine.state is VoiceState.RECORDING
    assert machine.recognition_result(session.id, "what is this")
    assert machine.recognition_end(session.id) is False
    assert machine.answer_resolved(session.id, "an answer")
    assert machine.synthesis_finished(session.id)
    assert machine.state is VoiceState.IDLE
    assert machine.session is None
    assert [(prev.value, new.value) for prev, new, _ in moves] == [
        ("Idle", "Recording"),
        ("Recording", "Processing"),
        ("Processing", "Speaking"),
        ("Speaking", "Idle"),
    ]
    assert session.transcript == "what is this"
    assert session.answer == "an answer"


def test_press_only_from_idle():
    machine = VoiceSessionMachine()
    first = machine.press()
    assert machine.press() is None
    machine.recognition_error(first.id, "no-speech")
    assert machine.state is VoiceState.ERROR
    assert machine.press() is None
    machine.synthesis_finished(first.id)
    second = machine.press()
    assert second.id == first.id + 1
    assert machine.generation == 2


def test_stale_events_are_ignored():
    machine = VoiceSessionMachine()
    old = machine.press()
    machine.recognition_result(old.id, "first question")
    machine.cancel("context.changed")
    new = machine.press()
    assert machine.answer_resolved(old.id, "late") is False
    assert machine.answer_rejected(old.id) is False
    assert machine.synthesis_finished(old.id) is False
    assert machine.recognition_error(old.id, "aborted") is False
    assert machine.state is VoiceState.RECORDING
    assert machine.is_current(new.id)
    assert not machine.is_current(old.id)


def test_end_without_result_returns_to_idle():
    machine = VoiceSessionMachine()
    moves = record(machine)
    session = machine.press()
    assert machine.recognition_end(session.id)
    assert machine.state is VoiceState.IDLE
    assert moves[-1][2] == "recognition.no_result"


def test_answer_rejection_records_error_kind():
    machine = VoiceSessionMachine()
    session = machine.press()
    machine.recognition_result(session.id, "q")
    assert machine.answer_rejected(session.id)
    assert session.error is ErrorKind.ANSWER_SERVICE
    assert machine.synthesis_finished(session.id, failed=True)
    assert machine.state is VoiceState.IDLE


def test_events_out_of_order_rejected():
    machine = VoiceSessionMachine()
    session = machine.press()
    assert machine.answer_resolved(session.id, "too early") is False
    assert machine.synthesis_finished(session.id) is False
    assert machine.state is VoiceState.RECORDING


def test_error_kind_mapping():
    assert ErrorKind.from_recognition("no-speech") is ErrorKind.NO_SPEECH
    assert ErrorKind.from_recognition("network") is ErrorKind.NETWORK
    assert ErrorKind.from_recognition("aborted") is ErrorKind.ABORTED
    assert ErrorKind.from_recognition("audio-capture") is ErrorKind.OTHER


def test_cancel_when_idle():
    assert VoiceSessionMachine().cancel() is False
