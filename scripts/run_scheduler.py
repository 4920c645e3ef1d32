"""
Main entry point for the Studio Class Scheduling System (CLI).
Runs seed, optimize and gap-fill over pre-validated JSON inputs.
"""

import sys
import json
import argparse
import logging
from datetime import datetime
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from studio_scheduler.core.logging_config import setup_logging
from studio_scheduler.models import schedule_to_records
from studio_scheduler.services import operations
from studio_scheduler.services.operations import StudioState, StudioContext


def _load_json(path):
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main():
    """
    Main function to run the scheduling system.
    Coordinates data loading, seeding, optimization, gap filling and output.
    """
    parser = argparse.ArgumentParser(
        description='Studio Class Scheduling System - Generate a weekly class schedule'
    )
    parser.add_argument('performance', help='JSON file with performance rows')
    parser.add_argument('--priorities', help='JSON file with priority catalog rows')
    parser.add_argument('--roster', help='JSON file with roster profiles and cohorts')
    parser.add_argument('--availability', help='JSON file with leave and blackout data')
    parser.add_argument('--iterations', type=int, default=1, help='Optimizer iterations to run')
    parser.add_argument('--fill-rounds', type=int, default=1, help='Gap-filling rounds after optimizing')
    parser.add_argument('--skip-seed', action='store_true', help='Start from an empty schedule')
    parser.add_argument('--override', action='store_true', help='Accept teacher hour limit breaches')
    parser.add_argument('--output', help='Write the final schedule records to this JSON file')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose output')

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.verbose else None)

    print("\n" + "=" * 80)
    print("STUDIO CLASS SCHEDULING SYSTEM")
    print("=" * 80)
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 80)

    try:
        print("\n[STEP 1] Loading data...")
        context = StudioContext.from_payload({
            "performance": _load_json(args.performance) or [],
            "priorities": _load_json(args.priorities) or [],
            "roster": _load_json(args.roster),
            "availability": _load_json(args.availability)
        })

        if len(context.index) == 0:
            print("ERROR: No performance records loaded. Please check the input file.")
            return 1

        print(f"\nLoaded:")
        print(f"  - {len(context.index)} performance records")
        print(f"  - {len(context.catalog)} priority entries")
        print(f"  - {context.skipped_rows} rows skipped")

        state = StudioState()

        if not args.skip_seed:
            print("\n[STEP 2] Seeding priority classes...")
            state, outcome = operations.seed(state, context, override=args.override)
            print(f"  {outcome.message}")

        print(f"\n[STEP 3] Optimizing ({args.iterations} iterations)...")
        for _ in range(args.iterations):
            state, outcome = operations.optimize(state, context, override=args.override)
            print(f"  {outcome.message}")
            if not outcome.success:
                break

        print(f"\n[STEP 4] Filling gaps ({args.fill_rounds} rounds)...")
        for _ in range(args.fill_rounds):
            state, outcome = operations.fill_gaps(state, context)
            print(f"  {outcome.message}")
            if outcome.already_optimal:
                break

        audit = context.validator().validate_schedule(state.instances)

        print("\n" + "=" * 80)
        print("VALIDATION SUMMARY")
        print("=" * 80)
        print(audit.get_summary())
        for violation in audit.violations:
            print(f"  - {violation}")

        print("\n" + "=" * 80)
        print("TEACHER HOURS")
        print("=" * 80)
        for teacher, hours in sorted(state.teacher_hours.items(), key=lambda item: -item[1]):
            ceiling = context.roster.max_hours_for(teacher)
            print(f"  {teacher:<30} {hours:5.1f}h / {ceiling:.1f}h")

        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(schedule_to_records(state.instances), f, indent=2)
            print(f"\nSchedule written to {args.output}")

        print("\n" + "=" * 80)
        print("SCHEDULING COMPLETE")
        print("=" * 80)
        print(f"Total classes scheduled: {len(state.instances)}")
        print(f"Total teacher hours: {sum(state.teacher_hours.values()):.1f}")
        print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * 80)

        return 0

    except KeyboardInterrupt:
        print("\n\nScheduling interrupted by user.")
        return 1

    except Exception as e:
        print(f"\n\nERROR: An unexpected error occurred:")
        print(f"{type(e).__name__}: {e}")

        import traceback
        print("\nFull traceback:")
        traceback.print_exc()

        return 1


if __name__ == '__main__':
    sys.exit(main())
