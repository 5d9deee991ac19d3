import threading

from ai_chat.repl.abort import AbortSignal, AbortState


def test_abort_signal_states() -> None:
    abort = AbortSignal()
    assert abort.state is AbortState.NONE
    assert not abort.aborted()

    abort.set_ctrlc()
    assert abort.aborted()
    assert abort.aborted_ctrlc()
    assert not abort.aborted_ctrld()

    abort.set_ctrld()
    assert abort.aborted_ctrld()
    assert not abort.aborted_ctrlc()

    abort.reset()
    assert not abort.aborted()


def test_abort_signal_visible_across_threads() -> None:
    abort = AbortSignal()
    worker = threading.Thread(target=abort.set_ctrlc)
    worker.start()
    worker.join()

    assert abort.aborted_ctrlc()
