import threading

from ephemera.backend.connections import ConnectionRegistry


def test_acquire_reuses_handle():
    reg = ConnectionRegistry()
    made = []

    def factory():
        made.append(object())
        return made[-1]

    first = reg.acquire("cfg", factory)
    assert reg.acquire("cfg", factory) is first
    assert len(made) == 1
    assert reg.acquire("other", factory) is not first
    assert len(reg) == 2


def test_per_thread_handles():
    reg = ConnectionRegistry()
    handles = {}
    barrier = threading.Barrier(4)

    def work(name):
        handles[name] = reg.acquire("cfg", object, per_thread=True)
        barrier.wait()

    threads = [threading.Thread(target=work, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len({id(h) for h in handles.values()}) == 4
    main = reg.acquire("cfg", object, per_thread=True)
    assert reg.acquire("cfg", object, per_thread=True) is main


def test_release_and_clear():
    reg = ConnectionRegistry()
    reg.acquire("a", object)
    reg.acquire("a", object, per_thread=True)
    reg.acquire("b", object)
    reg.release("a")
    assert len(reg) == 1
    reg.clear()
    assert len(reg) == 0


def test_handles_of_finished_threads_are_dropped():
    reg = ConnectionRegistry()

    def work():
        reg.acquire("cfg", object, per_thread=True)

    t = threading.Thread(target=work)
    t.start()
    t.join()
    assert len(reg) == 1
    reg.acquire("cfg", object, per_thread=True)
    assert len(reg) == 1
    reg.acquire("shared", object)
    assert len(reg) == 2
