"""Command line entry point that runs a simulated stop-signal session."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from taskcore.config import DEFAULT_SEED, SSTConfig
from taskcore.randomization import derive_seed

from .analysis.report import results_summary_text
from .export import DEFAULT_PREFIX, save_session_package
from .simulation import PARTICIPANT_SEED_SALT, ParticipantProfile, SyntheticParticipant, simulate_session

DEFAULT_CONFIG = SSTConfig.from_defaults()
DEFAULT_PROFILE = ParticipantProfile()


def _seed(text: str) -> int:
    return int(text, 0)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m stopsignal",
        description=(
            "Run the oculomotor stop-signal task against a synthetic participant "
            "and print the session summary."
        ),
    )
    parser.add_argument(
        "--seed",
        type=_seed,
        default=DEFAULT_SEED,
        help="Non-zero session seed; accepts decimal or 0x-prefixed hex (default: %(default)#x).",
    )
    parser.add_argument(
        "--baseline-trials",
        type=int,
        default=DEFAULT_CONFIG.baseline_trial_count,
        help="Number of baseline GO trials (default: %(default)s).",
    )
    parser.add_argument(
        "--sst-trials",
        type=int,
        default=DEFAULT_CONFIG.sst_trial_count,
        help="Number of scheduled stop-signal trials (default: %(default)s).",
    )
    parser.add_argument(
        "--practice-trials",
        type=int,
        default=DEFAULT_CONFIG.practice_trial_count,
        help="Unscored practice trials run before the baseline (default: %(default)s).",
    )
    parser.add_argument(
        "--go-probability",
        type=float,
        default=DEFAULT_CONFIG.go_probability,
        help="Share of GO trials in the stop-signal block (default: %(default)s).",
    )
    parser.add_argument(
        "--no-early-stop",
        action="store_true",
        help="Run the whole stop-signal plan even once enough valid trials are collected.",
    )
    parser.add_argument(
        "--go-rt-ms",
        type=float,
        default=DEFAULT_PROFILE.go_rt_ms,
        help="Mean saccade latency of the synthetic participant (default: %(default)s).",
    )
    parser.add_argument(
        "--stop-failure-rate",
        type=float,
        default=DEFAULT_PROFILE.stop_failure_rate,
        help="Probability that the synthetic participant fails a STOP trial (default: %(default)s).",
    )
    parser.add_argument(
        "--language",
        choices=("en", "zh"),
        default="en",
        help="Language of the printed summary (default: %(default)s).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Save the session package as a timestamped pickle in this folder.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every trial and block transition.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SSTConfig.from_dict(
            {
                "rng_seed": args.seed,
                "baseline_trial_count": args.baseline_trials,
                "sst_trial_count": args.sst_trials,
                "practice_trial_count": args.practice_trials,
                "go_probability": args.go_probability,
                "early_stop": {"enabled": not args.no_early_stop},
            }
        )
        profile = ParticipantProfile(go_rt_ms=args.go_rt_ms, stop_failure_rate=args.stop_failure_rate)
        participant = SyntheticParticipant(profile, seed=derive_seed(config.rng_seed, PARTICIPANT_SEED_SALT))
    except ValueError as exc:
        parser.error(str(exc))

    runner = simulate_session(config, participant)
    print(results_summary_text(runner.results, args.language))

    if args.output_dir is not None:
        path = save_session_package(runner.session_package(), args.output_dir, DEFAULT_PREFIX, dt=runner.start_datetime)
        print("Saved session package to {}".format(path))


if __name__ == "__main__":  # pragma: no cover - module level CLI hook
    main(sys.argv[1:])
