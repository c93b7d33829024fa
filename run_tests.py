#!/usr/bin/env python3
# ================================================================================
# Test Runner Script
# ================================================================================
#
# Entry point for executing the resilient_api test suites.
#
# Features:
#   - Run the unit suite, the concurrency tests, or everything
#   - Filter by pytest markers (P0, retry, auth, ...)
#   - Parallel execution through pytest-xdist
#   - Generate Allure reports
#
# Usage:
#   python run_tests.py --suite unit --tags P0 retry
#   python run_tests.py --suite concurrency
#   python run_tests.py --suite all --parallel 4 --allure
#
# ================================================================================

import argparse
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger


# Configure logging
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    level="INFO"
)


SUITE_PATHS = {
    "unit": ["testsuites/unit"],
    "concurrency": ["testsuites/unit", "-m", "concurrency"],
    "all": ["testsuites/"],
}


class TestRunner:
    """
    Orchestrates a pytest run.

    This class handles:
    - Suite selection and marker filtering
    - Parallel execution configuration
    - Allure report generation
    """

    def __init__(
        self,
        suite: str = "all",
        tags: Optional[List[str]] = None,
        parallel: int = 1,
        allure_report: bool = True,
        verbose: bool = False
    ):
        """
        Initialize test runner.

        Args:
            suite: Test suite to run - "unit", "concurrency", "all"
            tags: List of pytest markers to filter tests
            parallel: Number of parallel workers
            allure_report: Generate Allure report
            verbose: Enable verbose output
        """
        self.suite = suite
        self.tags = tags or []
        self.parallel = parallel
        self.allure_report = allure_report
        self.verbose = verbose

        # Paths
        self.root_dir = Path(__file__).parent
        self.reports_dir = self.root_dir / "reports"
        self.allure_results = self.reports_dir / "allure-results"
        self.allure_report_dir = self.reports_dir / "allure-report"

    def run(self) -> int:
        """
        Execute the test run.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        logger.info("=" * 60)
        logger.info("Starting Test Execution")
        logger.info("=" * 60)
        logger.info(f"Suite: {self.suite}")
        logger.info(f"Tags: {self.tags or 'All'}")
        logger.info(f"Parallel Workers: {self.parallel}")
        logger.info("=" * 60)

        self._prepare_environment()

        cmd = self._build_pytest_command()
        logger.info(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, cwd=str(self.root_dir))
            exit_code = result.returncode
        except OSError as e:
            logger.error(f"Test execution failed: {e}")
            exit_code = 1

        if self.allure_report:
            self._generate_allure_report()

        self._print_summary(exit_code)
        return exit_code

    def _prepare_environment(self) -> None:
        """Create report directories."""
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        self.allure_results.mkdir(parents=True, exist_ok=True)
        logger.debug("Environment prepared")

    def _build_pytest_command(self) -> List[str]:
        """Build the pytest command with all options."""
        cmd = [sys.executable, "-m", "pytest"]
        cmd.extend(SUITE_PATHS[self.suite])

        # A suite that already selects markers is narrowed further by tags
        if self.tags:
            marker_expr = " or ".join(self.tags)
            if "-m" in cmd:
                index = cmd.index("-m") + 1
                cmd[index] = f"({cmd[index]}) and ({marker_expr})"
            else:
                cmd.extend(["-m", marker_expr])

        if self.parallel > 1:
            cmd.extend(["-n", str(self.parallel)])

        if self.allure_report:
            cmd.extend(["--alluredir", str(self.allure_results)])

        cmd.append("-v" if self.verbose else "-q")
        return cmd

    def _generate_allure_report(self) -> None:
        """Generate Allure HTML report."""
        logger.info("Generating Allure report...")

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        report_path = self.reports_dir / f"allure-report-{timestamp}"
        try:
            subprocess.run([
                "allure", "generate",
                str(self.allure_results),
                "-o", str(report_path),
                "--clean"
            ], check=True)
        except FileNotFoundError:
            logger.warning("Allure CLI not found. Please install Allure to generate reports.")
            return
        except subprocess.CalledProcessError as e:
            logger.error(f"Failed to generate Allure report: {e}")
            return

        # Point the "latest" link at the new report
        latest_link = self.allure_report_dir
        if latest_link.is_symlink():
            latest_link.unlink()
        elif latest_link.exists():
            shutil.rmtree(latest_link)
        latest_link.symlink_to(report_path.name)

        logger.info(f"Report generated: {report_path}")
        logger.info(f"Latest report: {self.allure_report_dir}")

    def _print_summary(self, exit_code: int) -> None:
        """Print test execution summary."""
        logger.info("=" * 60)
        if exit_code == 0:
            logger.info("TEST EXECUTION COMPLETED SUCCESSFULLY")
        else:
            logger.error(f"TEST EXECUTION FAILED (exit code: {exit_code})")

        if self.allure_report:
            logger.info(f"Report available at: {self.allure_report_dir}")

        logger.info("=" * 60)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Resilient API Client Test Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the unit suite
  python run_tests.py --suite unit

  # Run P0 retry tests in parallel
  python run_tests.py --suite all --tags P0 retry --parallel 4

  # Run thread-safety tests without a report
  python run_tests.py --suite concurrency --no-allure
        """
    )

    parser.add_argument(
        "--suite",
        choices=sorted(SUITE_PATHS),
        default="all",
        help="Test suite to run (default: all)"
    )

    parser.add_argument(
        "--tags",
        nargs="+",
        default=[],
        help="Pytest markers to filter tests (e.g., P0 retry auth)"
    )

    parser.add_argument(
        "--parallel", "-n",
        type=int,
        default=1,
        help="Number of parallel workers (default: 1)"
    )

    parser.add_argument(
        "--no-allure",
        action="store_true",
        help="Disable Allure report generation"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    runner = TestRunner(
        suite=args.suite,
        tags=args.tags,
        parallel=args.parallel,
        allure_report=not args.no_allure,
        verbose=args.verbose
    )

    sys.exit(runner.run())


if __name__ == "__main__":
    main()
