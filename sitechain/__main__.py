"""
sitechain
=========

Command line runner: schedule a priced WBS and print the report.
"""

import argparse
import json
import logging
import sys

from sitechain.config import CapacityConstraints, SchedulerOptions, settings
from sitechain.domain.phase import PhaseModel
from sitechain.domain.wbs import PriceMatch, WbsProject
from sitechain.examples.sample_project import build_sample_project, print_report
from sitechain.services.capacity import optimize
from sitechain.services.sequencer import sequence
from sitechain.utils.logger import configure_logging

logger = logging.getLogger("sitechain")


def load_input(path):
    """Read {"project": {...}, "price_matches": [...]} from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    project = WbsProject.from_dict(data["project"])
    matches = [PriceMatch.from_dict(m) for m in data.get("price_matches", [])]
    return project, matches


def output_path(filename):
    return str(settings.OUTPUT_DIR / filename)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Construction scheduling with critical chain buffers")
    parser.add_argument("--input", type=str, help="JSON file with the project WBS and price matches")
    parser.add_argument("--ccpm", action="store_true", help="Attach critical chain buffers")
    parser.add_argument("--optimize", action="store_true", help="Run the site capacity optimizer")
    parser.add_argument(
        "--max-workers", type=int, default=settings.MAX_WORKERS, help="Crew ceiling per phase"
    )
    parser.add_argument("--gantt", type=str, help="Save a Gantt chart to this file")
    parser.add_argument("--fever", type=str, help="Save a fever chart to this file")
    parser.add_argument("--capacity", type=str, help="Save a capacity chart to this file")
    parser.add_argument("--network", type=str, help="Save the phase network to this file")
    parser.add_argument("--json", type=str, help="Write the schedule as JSON to this file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.input:
        project, matches = load_input(args.input)
    else:
        logger.info("No input given, scheduling the sample project")
        project, matches = build_sample_project()

    options = SchedulerOptions(max_workers=args.max_workers, use_critical_chain=args.ccpm)
    phase_model = PhaseModel.default()
    schedule = sequence(project, matches, options, phase_model)

    optimized = None
    if args.optimize or args.capacity:
        optimized = optimize(schedule, CapacityConstraints(), phase_model)

    print_report(schedule, optimized)

    if args.json:
        with open(output_path(args.json), "w", encoding="utf-8") as f:
            json.dump(schedule.to_dict(), f, indent=2)

    if args.gantt or args.fever or args.capacity or args.network:
        import matplotlib

        matplotlib.use("Agg")
        from sitechain.visualization.capacity_chart import create_capacity_chart
        from sitechain.visualization.fever_chart import create_fever_chart
        from sitechain.visualization.gantt import create_gantt_chart
        from sitechain.visualization.network import create_phase_network

        if args.gantt:
            create_gantt_chart(schedule, output_path(args.gantt), show=False)
        if args.fever:
            if create_fever_chart(schedule, output_path(args.fever), show=False) is None:
                logger.warning("No buffers to chart, run with --ccpm")
        if args.capacity:
            create_capacity_chart(optimized, output_path(args.capacity), show=False)
        if args.network:
            create_phase_network(phase_model, schedule, output_path(args.network), show=False)

    return 0


if __name__ == "__main__":
    sys.exit(main())
