"""
Main pipeline script for the course catalog.

This script fetches and writes the whole catalog:
1. Terms metadata
2. Subjects and section stubs per term
3. Section details and unique course records

Usage:
    # Scrape the most recent terms
    python -m bannerscraper.pipelines.sections.run_all

    # Scrape specific terms into a file
    python -m bannerscraper.pipelines.sections.run_all --terms 202030 202040 --output out.json

    # List available terms
    python -m bannerscraper.pipelines.sections.run_all --list-terms
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...core.config import settings
from ...core.logging_setup import configure_logging
from .errors import ScrapeError
from .scraper import get_all_terms, save_catalog, scrape_catalog_sync

logger = logging.getLogger(__name__)


def run_full_pipeline(
    term_ids: Optional[List[str]] = None,
    num_terms: int = settings.num_terms,
    max_concurrent: int = settings.max_concurrent_sections,
    output_file: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run the full catalog pipeline.

    Args:
        term_ids: Optional list of specific term codes
        num_terms: How many recent terms to list when term_ids is empty
        max_concurrent: Max sections fetched concurrently
        output_file: Where to write the catalog JSON

    Returns:
        Dictionary with pipeline results

    Raises:
        ScrapeError: no terms or no subjects could be found
    """
    start_time = time.time()
    results: Dict[str, Any] = {
        "start_time": datetime.now().isoformat(),
        "terms": 0,
        "subjects": 0,
        "classes": 0,
        "sections": 0,
        "output_file": None,
    }

    print("=" * 60)
    print("Step 1: Fetching terms...")
    print("=" * 60)
    terms = get_all_terms(term_ids=term_ids, num_terms=num_terms)
    print(f"Using terms: {[t.term_id for t in terms]}")

    print("\n" + "=" * 60)
    print("Step 2: Scraping sections and courses...")
    print("=" * 60)

    def progress_callback(completed: int, total: int) -> None:
        if completed % 1000 == 0 or completed == total:
            pct = 100 * completed / total
            print(f"  Progress: {completed}/{total} ({pct:.1f}%)")

    catalog = scrape_catalog_sync(
        terms, max_concurrent=max_concurrent, progress_callback=progress_callback
    )

    path = save_catalog(catalog, output_file)

    elapsed = time.time() - start_time
    results.update(
        terms=len(catalog.terms),
        subjects=len(catalog.subjects),
        classes=len(catalog.classes),
        sections=len(catalog.sections),
        output_file=str(path),
        elapsed_seconds=elapsed,
        end_time=datetime.now().isoformat(),
    )

    print("\n" + "=" * 60)
    print("Pipeline Complete!")
    print("=" * 60)
    print(f"Time: {elapsed:.1f} seconds")
    print(f"Terms: {results['terms']}")
    print(f"Subjects: {results['subjects']}")
    print(f"Classes: {results['classes']}")
    print(f"Sections: {results['sections']}")
    print(f"Output: {results['output_file']}")

    return results


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Scrape the Banner course catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape the most recent terms
  bannerscraper

  # Scrape specific terms
  bannerscraper --terms 202030 202040

  # List available terms
  bannerscraper --list-terms
""",
    )
    parser.add_argument("--terms", nargs="+", help="Specific term codes (e.g., 202030 202040)")
    parser.add_argument(
        "--num-terms", type=int, default=settings.num_terms, help="Recent terms to list"
    )
    parser.add_argument(
        "--concurrent",
        type=int,
        default=settings.max_concurrent_sections,
        help="Max sections fetched concurrently",
    )
    parser.add_argument("--output", type=str, default=None, help="Output file path")
    parser.add_argument("--log-level", type=str, default=settings.log_level, help="Logging level")
    parser.add_argument(
        "--list-terms", action="store_true", help="List available terms and exit"
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.list_terms:
        print("Fetching available terms...")
        terms = get_all_terms(num_terms=args.num_terms)
        print(f"\nFound {len(terms)} terms:")
        for term in terms:
            college = f" [{term.sub_college_name}]" if term.sub_college_name else ""
            print(f"  {term.term_id}: {term.text}{college}")
        return

    try:
        run_full_pipeline(
            term_ids=args.terms,
            num_terms=args.num_terms,
            max_concurrent=args.concurrent,
            output_file=args.output,
        )
    except ScrapeError as e:
        logger.error("Scrape failed: %s", e)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(1)


if __name__ == "__main__":
    main()
