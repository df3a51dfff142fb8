from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from db.samples_store import SampleRepository, init_samples_db
from domain.sampling import Sample


def _samples() -> list[Sample]:
    return [
        Sample(block=14_275_140, timestamp=1_645_990_611_000, price=Decimal("151.38799633")),
        Sample(block=14_275_280, timestamp=1_645_992_412_000, price=Decimal("152.1")),
    ]


def test_save_and_load_run_preserves_order_and_precision(tmp_path: Path) -> None:
    repo = SampleRepository(init_samples_db(db_file=tmp_path / "samples.db"))

    saved = repo.save_run("run-1", chain="eth", token_address="0xABC", samples=reversed(_samples()))

    assert saved == 2
    assert repo.load_run("run-1") == _samples()


def test_duplicate_blocks_in_run_are_ignored(tmp_path: Path) -> None:
    repo = SampleRepository(init_samples_db(db_file=tmp_path / "samples.db"))
    repo.save_run("run-1", chain="eth", token_address="0xabc", samples=_samples())

    repo.save_run("run-1", chain="eth", token_address="0xabc", samples=_samples()[:1])

    assert len(repo.load_run("run-1")) == 2


def test_runs_are_kept_apart(tmp_path: Path) -> None:
    repo = SampleRepository(init_samples_db(db_file=tmp_path / "samples.db"))
    repo.save_run("b", chain="eth", token_address="0xabc", samples=_samples()[:1])
    repo.save_run("a", chain="eth", token_address="0xabc", samples=_samples())

    assert repo.list_runs() == ["a", "b"]
    assert [s.block for s in repo.load_run("b")] == [14_275_140]
    assert repo.load_run("missing") == []


def test_empty_run_writes_nothing(tmp_path: Path) -> None:
    repo = SampleRepository(init_samples_db(db_file=tmp_path / "samples.db"))

    assert repo.save_run("empty", chain="eth", token_address="0xabc", samples=[]) == 0
    assert repo.list_runs() == []


def test_reset_drops_existing_file(tmp_path: Path) -> None:
    db_file = tmp_path / "nested" / "samples.db"
    SampleRepository(init_samples_db(db_file=db_file)).save_run(
        "run-1", chain="eth", token_address="0xabc", samples=_samples()
    )

    repo = SampleRepository(init_samples_db(db_file=db_file, reset=True))

    assert repo.list_runs() == []
