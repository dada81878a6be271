from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from . import __version__
from .plotting import plot_allele_counts, plot_evidence_counts
from .positions import PositionsError, load_positions
from .report import render_report
from .resolver import split_ancestors
from .scheduler import annotate_positions, summarize_rows
from .store import AlignmentStoreError, open_alignment
from .toy_data import make_toy_data
from .utils import ensure_outdir, write_json
from .validation import check_output_writable, check_readable, resolve_genomes
from .writer import export_bcftools_annotation, write_rows


class _ArgumentParser(argparse.ArgumentParser):
    """argparse parser whose usage errors exit with status 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _non_negative_int(s: str) -> int:
    try:
        n = int(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got: {s}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got: {s}")
    return n


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, AlignmentStoreError):
        msg = f"alignment store error: {err}"
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 1


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="ancestralallele",
        description=(
            "AncestralAllele: infer the ancestral base at reference positions from a "
            "multi-species genome alignment, trying ancestor genomes in priority order."
        ),
    )
    p.add_argument("--version", action="version", version=f"ancestralallele {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny alignment, reference FASTA and positions file for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # annotate
    # -----------------
    a = sub.add_parser(
        "annotate",
        help="Annotate reference positions with their inferred ancestral allele.",
    )
    a.add_argument("alignment", type=_path_exists, help="Input alignment (MAF, optionally .gz).")
    a.add_argument("ref_genome", help="Reference genome name.")
    a.add_argument(
        "target_genome",
        help="Ancestor genome name, or comma-separated list of genomes to try in order.",
    )
    a.add_argument("positions", help="BED/GFF-like file with reference coordinates (chrom start end).")
    a.add_argument("output", help="Output tab-delimited file.")
    a.add_argument(
        "--no-sort",
        "--noSort",
        dest="no_sort",
        action="store_true",
        help="Disable position sorting (process in input order; output order is unaffected).",
    )
    a.add_argument(
        "--progress",
        type=_non_negative_int,
        default=0,
        help="Report progress every N positions processed (0 = off).",
    )
    a.add_argument("--progress-bar", action="store_true", help="Show a progress bar on stderr.")
    a.add_argument(
        "--ref-fasta",
        default=None,
        type=_path_exists,
        help="Indexed FASTA of the reference genome, used for the refBase column.",
    )
    a.add_argument("--summary-json", default=None, help="Write run counters to this JSON file.")
    a.add_argument(
        "--report-dir",
        default=None,
        help="Write plots and report.html into this directory.",
    )
    a.add_argument("--log-file", default=None, help="Also write log messages to this file.")
    a.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # export-bcftools
    # -----------------
    e = sub.add_parser(
        "export-bcftools",
        help="Convert annotate output into a bgzipped, tabix-indexed table for bcftools annotate.",
    )
    e.add_argument("input", type=_path_exists, help="Output TSV of 'annotate'.")
    e.add_argument(
        "--prefix",
        default="ancestral_annotation",
        help="Output prefix; writes PREFIX.tsv.gz and PREFIX.tsv.gz.tbi.",
    )
    e.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "AncestralAllele quickstart (copy/paste):",
        "",
        "1) Single ancestor:",
        "   ancestralallele annotate \\",
        "     alignment.maf.gz hg38 Anc0 positions.bed ancestral.tsv",
        "",
        "2) Ancestors tried in order, with progress and a report:",
        "   ancestralallele annotate \\",
        "     alignment.maf.gz hg38 Anc0,Anc1,Anc2 positions.bed ancestral.tsv \\",
        "     --progress 100000 --report-dir report/",
        "",
        "3) Annotate a VCF with bcftools:",
        "   ancestralallele export-bcftools ancestral.tsv --prefix aa",
        "   Outputs: aa.tsv.gz and aa.tsv.gz.tbi",
        "",
        "Tip: run 'ancestralallele make-toy-data --outdir toy/' for a tiny worked example.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _write_report(report_dir: Path, summary: dict, inputs: dict) -> Path:
    report_dir = ensure_outdir(report_dir)
    plots_dir = report_dir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    evidence_png = plots_dir / "evidence_counts.png"
    allele_png = plots_dir / "allele_counts.png"
    plot_evidence_counts(evidence_counts=summary["evidence"], out_png=evidence_png)
    plot_allele_counts(allele_counts=summary["alleles"], out_png=allele_png)

    write_json(report_dir / "summary.json", summary)
    return render_report(
        outdir=report_dir,
        version=__version__,
        summary=summary,
        inputs=inputs,
        plots={
            "evidence_counts": str(Path("plots") / evidence_png.name),
            "allele_counts": str(Path("plots") / allele_png.name),
        },
    )


def cmd_annotate(args: argparse.Namespace) -> int:
    t0 = time.time()
    log_path = Path(args.log_file).expanduser().resolve() if args.log_file else None
    # progress messages are INFO records
    verbosity = max(int(args.verbose), 1 if args.progress > 0 else 0)
    _setup_logging(verbosity, logfile=log_path)

    logger = logging.getLogger("ancestralallele")
    logger.info("ancestralallele %s", __version__)

    try:
        ancestor_names = split_ancestors(args.target_genome)
        alignment = open_alignment(args.alignment)
        with alignment:
            ref_genome, candidates = resolve_genomes(alignment, args.ref_genome, ancestor_names)
            if len(candidates) > 1:
                logger.info("Using multiple genomes: %s", ", ".join(c.name for c in candidates))

            check_readable(args.positions, "positions file")
            check_output_writable(args.output)

            if args.ref_fasta:
                ref_genome.attach_fasta(args.ref_fasta)

            positions = load_positions(args.positions)
            if not positions:
                raise PositionsError("No valid positions found in input file")
            logger.info("Loaded %d positions", len(positions))

            rows = annotate_positions(
                ref_genome,
                candidates,
                positions,
                sort=not bool(args.no_sort),
                progress_every=int(args.progress),
                progress_bar=bool(args.progress_bar),
            )

        out_path = write_rows(rows, args.output)
        summary = summarize_rows(rows, runtime_seconds=time.time() - t0)

        if args.summary_json:
            write_json(args.summary_json, summary)

        if args.report_dir:
            inputs = {
                "alignment": args.alignment,
                "ref_genome": args.ref_genome,
                "ancestors": [c.name for c in candidates],
                "positions": args.positions,
                "output": str(out_path),
            }
            report_path = _write_report(Path(args.report_dir), summary, inputs)
            logger.info("Report written: %s", report_path)

        print(str(out_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_export_bcftools(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose, logfile=None)

    try:
        summary = export_bcftools_annotation(args.input, args.prefix)
    except Exception as e:
        return _handle_error(e)

    print(f"Created bgzip compressed and tabix indexed file: {summary['annotation']}")
    print(f"Kept {summary['calls_kept']} of {summary['rows_total']} rows ({summary['rows_unknown']} with allele N).")
    print("Use with:")
    print(summary["bcftools_cmd"])
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "annotate":
        return cmd_annotate(args)
    if args.cmd == "export-bcftools":
        return cmd_export_bcftools(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
