"""Utilities for handling KeyboardInterrupt while a toolchain process runs.

A Ctrl-C delivered while subprocess.run() is waiting on make or the compiler
must still stop the whole build, even when the wait happens in a worker
thread of an embedding application.
"""

import _thread
import threading


def handle_keyboard_interrupt_properly(ke: KeyboardInterrupt) -> None:
    """Propagate a KeyboardInterrupt to the main thread and re-raise it.

    Usage:
        try:
            runner.run(cmd, stage="building")
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke)

    Args:
        ke: The KeyboardInterrupt exception to handle

    Raises:
        KeyboardInterrupt: Always re-raises the exception after handling
    """
    if threading.current_thread() is not threading.main_thread():
        _thread.interrupt_main()
    raise ke
