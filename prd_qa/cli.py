"""
Command Line Interface for the PRD QA pipeline.

Runs analysis, optional PRD enhancement, the test plan stages and optional QA
documentation over local inputs, and writes the resulting session as JSON.
Exits non-zero with a machine-readable error on stderr when a stage fails.
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Optional, List
import logging

from .attachments import load_attachments
from .config import load_settings
from .exceptions import QAPipelineError, StageFailedError
from .models import InputBundle, PipelineSession, PipelineStep
from .runtime import create_runtime
from .video import extract_frames, probe_duration
from .workflow import QAWorkflow


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Reduce noise from some libraries
    logging.getLogger('openai').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""

    parser = argparse.ArgumentParser(
        prog="prd-qa",
        description="PRD QA Pipeline - Analyze requirements and generate prioritized, traceable test plans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a PRD and generate the test plan
  prd-qa --prd-file prd.md --output session.json

  # Include screenshots and a design link, skip gap analysis
  prd-qa --prd-file prd.md --attachment login.png --attachment checkout.png \\
    --design-url https://www.figma.com/file/abc --skip-analysis

  # Everything: enhanced PRD, test plan and QA documentation
  prd-qa --prd-text "Users can reset their password by email" --enhance-prd --qa-docs
        """
    )

    input_group = parser.add_argument_group('input specification')
    input_group.add_argument(
        '--prd-file',
        type=Path,
        help='Path to PRD/user story file'
    )
    input_group.add_argument(
        '--prd-text',
        help='Inline PRD text (alternative to --prd-file)'
    )
    input_group.add_argument(
        '--design-url',
        default='',
        help='External design reference (e.g. a Figma link)'
    )
    input_group.add_argument(
        '--attachment',
        type=Path,
        action='append',
        default=[],
        help='Image or video file to include (repeatable)'
    )

    runtime_group = parser.add_argument_group('LLM runtime options')
    runtime_group.add_argument(
        '--base-url',
        help='OpenAI-compatible API base URL (default from config)'
    )
    runtime_group.add_argument(
        '--api-key',
        help='API key (default: PRD_QA_API_KEY / OPENAI_API_KEY)'
    )
    runtime_group.add_argument(
        '--model',
        help='Model name (default from config)'
    )

    stage_group = parser.add_argument_group('stage options')
    stage_group.add_argument(
        '--skip-analysis',
        action='store_true',
        help='Generate the test plan without a gap analysis first'
    )
    stage_group.add_argument(
        '--enhance-prd',
        action='store_true',
        help='Also produce an enhanced PRD addressing the findings'
    )
    stage_group.add_argument(
        '--qa-docs',
        action='store_true',
        help='Also generate QA documentation after the test plan'
    )

    output_group = parser.add_argument_group('output options')
    output_group.add_argument(
        '--output',
        type=Path,
        default=Path('prd-qa-session.json'),
        help='Session JSON output path (default: ./prd-qa-session.json)'
    )
    output_group.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser


def validate_inputs(args: argparse.Namespace) -> None:
    """Validate command line inputs."""

    if args.prd_file and args.prd_text:
        raise ValueError("Provide either --prd-file or --prd-text, not both")

    if not (args.prd_file or args.prd_text or args.design_url or args.attachment):
        raise ValueError("At least one input (--prd-file, --prd-text, --design-url or --attachment) is required")

    if args.prd_file and not args.prd_file.exists():
        raise FileNotFoundError(f"PRD file not found: {args.prd_file}")

    for path in args.attachment:
        if not path.exists():
            raise FileNotFoundError(f"Attachment not found: {path}")


def load_input_bundle(args: argparse.Namespace) -> InputBundle:
    """Load and create InputBundle from command line arguments."""

    if args.prd_file:
        prd_text = args.prd_file.read_text(encoding='utf-8')
    else:
        prd_text = args.prd_text or ''

    attachments = load_attachments(args.attachment, frame_extractor=extract_frames, video_probe=probe_duration)

    return InputBundle(prd_text=prd_text, design_url=args.design_url or '', attachments=attachments)


def print_progress(message: str, step: PipelineStep) -> None:
    print(f"[{step.value}] {message}", file=sys.stderr)


def run_session(workflow: QAWorkflow, inputs: InputBundle, args: argparse.Namespace) -> PipelineSession:
    """Drive the session operations selected on the command line."""

    session = workflow.reset()
    if args.skip_analysis:
        session = session.advance(PipelineStep.PRD_INPUT, inputs=inputs)
    else:
        session = workflow.analyze(session, inputs, print_progress)

    if args.enhance_prd:
        session = workflow.enhance_prd(session, print_progress)

    session = workflow.generate_plan(session, print_progress)

    if args.qa_docs:
        session = workflow.generate_qa_docs(session, print_progress)

    return session


def write_session(session: PipelineSession, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(session.model_dump_json(indent=2), encoding='utf-8')


def print_success_summary(session: PipelineSession, output: Path) -> None:
    """Print brief success summary to stdout."""

    result = session.result
    findings = session.findings

    print("✅ Test Plan Generated Successfully")
    print("")
    print("📊 Summary:")
    print(f"  Findings: {len(findings)}")
    if result:
        print(f"  Test Cases: {len(result.test_cases)}")
        print(f"  Traced Stories: {len(result.traceability_matrix)}")
        print("")
        print("🎯 Priority Distribution:")
        for priority, count in result.priority_distribution().items():
            print(f"  {priority}: {count} test cases")
    print("")
    print(f"📁 Session: {output}")


def print_error_summary(error: Exception) -> None:
    """Print machine-readable error summary to stderr."""

    if isinstance(error, StageFailedError):
        error_report = {
            "error_type": "STAGE_FAILURE",
            "cause_type": type(error.cause).__name__,
            "rollback_step": error.rollback_session.step.value,
            "message": str(error)
        }
    else:
        error_report = {
            "error_type": type(error).__name__,
            "message": str(error)
        }

    print(json.dumps(error_report, indent=2), file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""

    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        validate_inputs(args)
        inputs = load_input_bundle(args)

        settings = load_settings(base_url=args.base_url, api_key=args.api_key, model=args.model)
        runtime = create_runtime(settings)
        logger.debug(f"Runtime: {runtime.get_model_info()}")
        if not runtime.is_available():
            logger.warning(f"LLM service at {settings.base_url} did not answer the health check")

        workflow = QAWorkflow.from_runtime(runtime, settings)
        session = run_session(workflow, inputs, args)

        write_session(session, args.output)
        print_success_summary(session, args.output)
        return 0

    except StageFailedError as e:
        logger.error(f"Stage failed: {e}")
        write_session(e.rollback_session, args.output)
        print_error_summary(e)
        return 1

    except (QAPipelineError, ValueError, FileNotFoundError) as e:
        logger.error(f"Input validation failed: {e}")
        print_error_summary(e)
        return 2

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130  # Standard Unix exit code for SIGINT

    except Exception as e:
        logger.exception("Unexpected error occurred")
        print_error_summary(e)
        return 3


if __name__ == '__main__':
    sys.exit(main())
