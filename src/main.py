from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError

from config import AppSettings, config
from db.samples_store import SampleRepository, init_samples_db
from domain.sampling import IntervalSampler, ProviderError, Sample, SamplingError, SamplingRequest
from services.block_lookups import build_moralis_sampler

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sample token prices every N minutes across a block range.")
    parser.add_argument("start_block", type=int, help="First block to sample.")
    parser.add_argument("end_block", type=int, help="Stop before this block.")
    parser.add_argument("--interval", type=float, default=30.0, help="Minutes between samples (default: 30).")
    parser.add_argument("--token", help="Token contract address (default: from settings).")
    parser.add_argument("--exchange", help="Exchange used for pricing, e.g. sushiswap (default: from settings).")
    parser.add_argument("--chain", help="Chain id as understood by Moralis (default: from settings).")
    parser.add_argument("--db", type=Path, help="Save samples into this sqlite file.")
    parser.add_argument("--save", action="store_true", help="Save samples into the configured sqlite file.")
    parser.add_argument("--run-id", help="Run identifier used when saving (default: UTC start time).")
    parser.add_argument("--output", type=Path, help="Write samples JSON here instead of stdout.")
    parser.add_argument("--verbose", action="store_true", help="Log every sample as it is taken.")
    return parser.parse_args(argv)


def _log_sample(sample: Sample) -> None:
    logger.info("block=%d timestamp=%d price=%s", sample.block, sample.timestamp, sample.price)


def run(
    sampler: IntervalSampler,
    request: SamplingRequest,
    *,
    output: Path | None = None,
    repository: SampleRepository | None = None,
    run_id: str | None = None,
    chain: str = "eth",
    token_address: str = "",
) -> list[Sample]:
    samples = sampler.sample(request)
    payload = json.dumps([sample.to_dict() for sample in samples], indent=2)
    if output is not None:
        output.write_text(payload)
        print(f"Wrote {len(samples)} samples to {output}")
    else:
        print(payload)

    if repository is not None:
        run_id = run_id or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        saved = repository.save_run(run_id, chain=chain, token_address=token_address, samples=samples)
        logger.info("Saved %d samples as run %s", saved, run_id)
    return samples


def main(argv: Sequence[str] | None = None, *, settings: AppSettings | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        settings = settings or config()
        chain = args.chain or settings.moralis_chain
        token_address = args.token or settings.token_address

        sampler = build_moralis_sampler(
            settings,
            token_address=token_address,
            exchange=args.exchange,
            chain=chain,
            on_sample=_log_sample if args.verbose else None,
        )
        repository: SampleRepository | None = None
        if args.db or args.save:
            repository = SampleRepository(init_samples_db(db_file=args.db or settings.samples_db_path))

        request = SamplingRequest(args.start_block, args.end_block, args.interval)
        run(
            sampler,
            request,
            output=args.output,
            repository=repository,
            run_id=args.run_id,
            chain=chain,
            token_address=token_address,
        )
    except (SamplingError, ProviderError, ValueError, OSError, SQLAlchemyError) as exc:
        logger.error("Sampling failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
