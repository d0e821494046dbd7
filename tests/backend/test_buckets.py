import pytest

from ephemera import ConfigurationError, CounterBucket, Ephemeral, HashBucket, from_method, storage_bucket


class Job(Ephemeral):
    report = storage_bucket(expires_in=600)
    hits = storage_bucket(counter=True)

    def __init__(self, id):
        self.id = id

    def summary(self):
        return "nothing yet"


def test_bucket_views():
    job = Job(1)
    assert isinstance(job.report, HashBucket)
    assert isinstance(job.hits, CounterBucket)
    assert job.report.key == "Job-1-report"
    assert Job.storage_config().bucket("hits").counter


def test_hash_bucket_is_separate_from_default(backend):
    job = Job(1)
    job.store(a=1)
    job.report.store(a=2, rows=12)
    assert job.retrieve(a=0) == 1
    assert job.report.retrieve(a=0) == 2
    assert Job(1).report.retrieve({"rows": 0, "a": 0}) == [12, 2]
    assert backend.ttl("Job-1-report") == 600
    assert backend.ttl("Job-1") is None


def test_bucket_from_method_default(backend):
    assert Job(1).report.retrieve(summary=from_method("summary")) == "nothing yet"


def test_bucket_clear_and_delete(backend):
    a, b = Job(1), Job(1)
    a.report.store(x=1)
    assert b.report.retrieve(x=0) == 1
    a.report.store(x=2)
    b.report.clear()
    assert b.report.retrieve(x=0) == 2
    b.report.delete()
    assert not backend.exists("Job-1-report")
    assert Job(1).report.retrieve(x=0) == 0


def test_bucket_declared_after_class_body(backend):
    class Late(Ephemeral):
        def __init__(self, id):
            self.id = id

    Late.storage_bucket("notes", expires_in=30)
    late = Late(3)
    late.notes.store(text="hi")
    assert late.notes.retrieve(text="") == "hi"
    assert backend.ttl("Late-3-notes") == 30


def test_buckets_are_inherited(backend):
    class SubJob(Job):
        pass

    sub = SubJob(1)
    sub.report.store(x=1)
    assert backend.get("SubJob-1-report") is not None


def test_invalid_bucket_declarations():
    with pytest.raises(ConfigurationError):
        storage_bucket(seed=lambda e: 1)
    with pytest.raises(ConfigurationError):
        storage_bucket(counter=True, seed=3)
    with pytest.raises(ConfigurationError):
        storage_bucket(condition=1.5)
