from datetime import date

from sitechain.config import SchedulerOptions
from sitechain.domain.wbs import (
    CostBreakdown,
    PriceMatch,
    WbsArticle,
    WbsChapter,
    WbsProject,
    WbsSubChapter,
)
from sitechain.services.sequencer import sequence

# (chapter code, chapter name, [(article code, description, unit, quantity, price code, unit cost)])
SAMPLE_CHAPTERS = [
    ("01", "Site setup", [
        ("01.01.001", "Site installation and hoarding", "Ud", 1, "EES010", 4500.0),
    ]),
    ("03", "Earthworks", [
        ("03.01.001", "Excavation for foundations", "m3", 600, "MTT010", 12.5),
        ("03.01.002", "Backfill and compaction", "m3", 200, "MTR010", 9.8),
    ]),
    ("04", "Foundations", [
        ("04.01.001", "Reinforced concrete footings", "m3", 80, "FSS010", 185.0),
        ("04.01.002", "Lean concrete blinding", "m3", 20, "FLE010", 95.0),
    ]),
    ("06", "Structure", [
        ("06.01.001", "Reinforced concrete columns", "m3", 30, "SBP010", 420.0),
        ("06.01.002", "Solid concrete slabs", "m2", 450, "SBL010", 78.0),
        ("06.02.001", "Steel reinforcement", "kg", 9000, "SMA010", 1.6),
    ]),
    ("08", "External walls", [
        ("08.01.001", "Double brick facade wall", "m2", 800, "ABT010", 42.0),
    ]),
    ("09", "Roof", [
        ("09.01.001", "Ceramic tile roof", "m2", 200, "CTM010", 48.0),
    ]),
    ("10", "Waterproofing", [
        ("10.01.001", "Bituminous membrane", "m2", 250, "IMP010", 18.0),
    ]),
    ("12", "Internal finishes", [
        ("12.01.001", "Gypsum plaster", "m2", 1200, "RIE010", 11.0),
    ]),
    ("13", "Flooring", [
        ("13.01.001", "Ceramic floor tiles", "m2", 600, "PAV010", 32.0),
    ]),
    ("15", "Window frames", [
        ("15.01.001", "Aluminium windows", "m2", 60, "CXA010", 260.0),
    ]),
    ("19", "Painting", [
        ("19.01.001", "Interior plastic paint", "m2", 2400, "PPI010", 6.5),
    ]),
    ("20", "Water supply", [
        ("20.01.001", "Dwelling water installation", "Ud", 3, "IFA010", 2100.0),
    ]),
    ("23", "Electrical", [
        ("23.01.001", "Dwelling electrical installation", "Ud", 3, "IEI015", 3800.0),
    ]),
    ("30", "Testing", [
        ("30.01.001", "Electrical installation tests", "Ud", 2, "XEE010", 350.0),
        ("30.01.002", "Final building inspection", "Ud", 1, "", 600.0),
    ]),
]


def build_sample_project():
    """
    Build a three-storey residential block and its price matches.

    Returns:
        tuple: (WbsProject, list of PriceMatch)
    """
    chapters = []
    matches = []
    for chapter_code, chapter_name, rows in SAMPLE_CHAPTERS:
        articles = []
        for code, description, unit, quantity, price_code, unit_cost in rows:
            articles.append(WbsArticle(code, description, unit, quantity))
            if not price_code:
                # Left unmatched: scheduled with the default productivity rate
                continue
            matches.append(
                PriceMatch(
                    article_code=code,
                    unit_cost=unit_cost,
                    price_code=price_code,
                    breakdown=CostBreakdown(
                        materials=unit_cost * 0.55,
                        labor=unit_cost * 0.35,
                        machinery=unit_cost * 0.10,
                    ),
                    confidence=0.9,
                )
            )
        chapters.append(
            WbsChapter(
                chapter_code,
                chapter_name,
                [WbsSubChapter(f"{chapter_code}.01", chapter_name, articles)],
            )
        )

    project = WbsProject(
        name="Residential Block A",
        start_date=date(2025, 1, 6),
        chapters=chapters,
        number_of_floors=3,
    )
    return project, matches


def print_report(schedule, optimized=None):
    """Print a plain-text schedule report."""
    print(f"Schedule Report: {schedule.project_name}")
    print("=" * 60)
    print(f"Start Date: {schedule.start_date.isoformat()}")
    print(f"Finish Date: {schedule.finish_date.isoformat()}")
    print(f"Duration: {schedule.total_duration_days} working days")
    print(f"Total Cost: {schedule.total_cost:,.2f} EUR")

    print("\nPhases:")
    for task in schedule.summary_tasks():
        print(
            f"  {task.uid:>3} {task.name:<28} {task.start_date.isoformat()} -> "
            f"{task.finish_date.isoformat()} ({task.duration_days}d, {task.cost:,.0f} EUR)"
        )

    print("\nCritical Path:")
    for uid in schedule.critical_path:
        task = schedule.get_task(uid)
        marker = "" if task.is_summary else "    "
        print(f"  {marker}{uid}: {task.name}")

    team = schedule.team_summary
    print("\nTeam:")
    print(f"  Peak workers: {team.max_workers:g}")
    print(f"  Average workers: {team.average_workers:g}")
    print(f"  Total man-hours: {team.total_man_hours:,.0f}")
    print(f"  Peak week: {team.peak_week}")

    chain = schedule.critical_chain
    if chain is not None:
        print("\nCritical Chain:")
        print(f"  Original duration: {chain.original_duration_days} working days")
        print(f"  Aggressive duration: {chain.aggressive_duration_days} working days")
        print(f"  Project buffer: {chain.project_buffer_days} days")
        print(f"  CCPM duration: {chain.ccpm_duration_days} working days")
        print("\nBuffers:")
        for buffer in chain.buffers:
            print(
                f"  {buffer.name} ({buffer.duration_days} days): "
                f"{buffer.start_date.isoformat()} -> {buffer.finish_date.isoformat()}"
            )
            if buffer.protects_task_uid is not None:
                print(f"    Protects: {buffer.protects_task_uid}")
            print(f"    Calculation: {buffer.strategy_name}")

    if optimized is not None:
        print("\nSite Capacity:")
        print(f"  Bottlenecks found: {len(optimized.bottlenecks)}")
        print(f"  Bottlenecks remaining: {len(optimized.remaining_bottlenecks)}")
        print(f"  Adjustments: {len(optimized.adjustments)}")
        print(
            f"  Duration: {optimized.original_duration_days} -> "
            f"{optimized.optimized_duration_days} working days "
            f"({optimized.efficiency_gain:+.1f}%)"
        )
        for suggestion in optimized.suggestions:
            print(f"  - {suggestion.title}: {suggestion.description}")


if __name__ == "__main__":
    project, matches = build_sample_project()
    schedule = sequence(project, matches, SchedulerOptions(use_critical_chain=True))
    print_report(schedule)
