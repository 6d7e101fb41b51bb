import logging
from pathlib import Path
from typing import Optional

import typer

from worker.app.config import settings
from worker.app.errors import ConfigError, ExitCode
from worker.app.models import RunOptions
from worker.app.services.compressor import build_compressor
from worker.app.services.walker import TreeWalker
from worker.app.telemetry import Telemetry

app = typer.Typer(help="tinycrush: compress images in place, skipping unchanged files")

log = logging.getLogger("tinycrush")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=True)


def _fail(code: int, message: str) -> None:
    log.error(message)
    raise typer.Exit(code=int(code))


@app.command()
def compress(
    directory: Optional[Path] = typer.Argument(
        None, help="Directory to crawl recursively"
    ),
    no_log: bool = typer.Option(
        False, "--no-log", help="Do not read or write per-directory change logs"
    ),
    rebuild_log: bool = typer.Option(
        False, "--rebuild-log", help="Ignore existing logs and recompress everything"
    ),
    rebuild_log_only: bool = typer.Option(
        False, "--rebuild-log-only", help="Rewrite logs from current files; never compress"
    ),
    backup: bool = typer.Option(
        False, "--backup", "-b", help="Keep originals as <file>.bak before overwrite"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Report what would happen, change nothing"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    run_log: Optional[Path] = typer.Option(
        None, "--run-log", help="Append JSONL run events to this file"
    ),
):
    """Compress every eligible image under DIRECTORY."""
    _setup_logging(verbose)

    if directory is None:
        _fail(ExitCode.BAD_ARGS, "Directory is required")
    if not directory.is_dir():
        _fail(ExitCode.BAD_ARGS, f"Not a directory: {directory}")

    options = RunOptions(
        use_change_log=not no_log,
        rebuild_log=rebuild_log,
        rebuild_log_only=rebuild_log_only,
        backup=backup,
        dry_run=dry_run,
    )
    if rebuild_log_only and backup:
        log.warning("--backup ignored with --rebuild-log-only")
    if no_log and (rebuild_log or rebuild_log_only):
        log.warning("--no-log set; rebuild flags ignored")

    tel = Telemetry(log_file=run_log) if run_log else Telemetry()

    log.info("Starting tinycrush")
    log.info(f"Directory: {directory}")
    log.info(f"Backup: {options.backup} | Dry-run: {options.dry_run}")
    log.info(
        f"Change log: {options.use_change_log} | Rebuild: {options.rebuild_log} "
        f"| Rebuild-only: {options.rebuild_log_only}"
    )

    try:
        compressor = build_compressor(options)
        walker = TreeWalker(compressor, options, telemetry=tel)
        groups = walker.discover(directory)
        total = sum(len(names) for _, names in groups)
        if not groups:
            log.info("No images found")
            raise typer.Exit(code=int(ExitCode.OK))
        log.info(f"Found {total} file(s) in {len(groups)} director(y/ies)")
        tel.log_json("run_start", root=str(directory), files=total, **options.model_dump())

        stats = walker.walk(groups)
    except typer.Exit:
        raise
    except ConfigError as e:
        _fail(e.exit_code, str(e))
    except Exception as e:
        log.exception(f"Unexpected error: {e}")
        tel.log_json("run_aborted", level="error", error=str(e))
        raise typer.Exit(code=int(ExitCode.RUNTIME))

    tel.log_json("run_end", **stats.as_dict())
    log.info(f"Summary: {stats.summary(options.rebuild_log_only)}")
    if stats.compression_count is not None:
        log.info(f"Tinify compressions this month: {stats.compression_count}")
    if stats.directory_failures:
        log.error(f"{stats.directory_failures} director(y/ies) could not update their log")
    if not stats.ok:
        _fail(ExitCode.GENERAL, f"{stats.failed} file(s) failed")
    log.info("Completed successfully")


@app.command()
def version():
    """Show version."""
    import importlib.metadata as md

    print(md.version("tinycrush"))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
