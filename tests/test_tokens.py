from tokens import RequestSequencer


def test_tokens_increase_monotonically():
    sequencer = RequestSequencer("connection")
    assert [sequencer.issue() for _ in range(3)] == [1, 2, 3]
    assert sequencer.last_issued == 3


def test_older_token_is_stale_after_newer_applied():
    sequencer = RequestSequencer("connection")
    older = sequencer.issue()
    newer = sequencer.issue()

    sequencer.mark_applied(newer)

    assert not sequencer.is_current(older)
    assert sequencer.is_current(newer)


def test_newer_token_stays_current_after_older_applied():
    sequencer = RequestSequencer("license")
    older = sequencer.issue()
    newer = sequencer.issue()

    sequencer.mark_applied(older)

    assert sequencer.is_current(newer)


def test_mark_applied_never_moves_backwards():
    sequencer = RequestSequencer("license")
    first, second = sequencer.issue(), sequencer.issue()
    sequencer.mark_applied(second)
    sequencer.mark_applied(first)
    assert sequencer.last_applied == second


def test_closed_sequencer_rejects_everything():
    sequencer = RequestSequencer("connection")
    token = sequencer.issue()
    sequencer.close()
    sequencer.close()
    assert sequencer.closed
    assert not sequencer.is_current(token)
    assert not sequencer.is_current(sequencer.issue())
