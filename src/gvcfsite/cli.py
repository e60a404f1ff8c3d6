from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from . import __version__
from .annotator import AnnotatorOptions, SiteAnnotator
from .chrom_depth import estimate_chrom_depth, read_chrom_depth, write_chrom_depth
from .depth_buffer import DepthBuffer
from .evidence import iter_pileup_evidence
from .locus_info import SiteModifiers, encode_filters
from .models import BaseId, ModifiedSiteGt, modified_gt_label
from .pipeline import annotate_sites
from .utils import ensure_outdir, open_textmaybe_gzip, write_json
from .validation import check_bam_index, check_fasta_index, parse_regions, parse_report_range

_TSV_COLUMNS = ["chrom", "pos", "ref", "depth", "filter", "modgt", "block"]


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


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


class _SiteTsvWriter:
    """Site sink writing one TSV row per emitted site."""

    def __init__(self, fh: TextIO, chrom: str, depth: DepthBuffer) -> None:
        self.fh = fh
        self.chrom = chrom
        self.depth = depth

    def __call__(self, pos: int, ref_id: BaseId, smod: SiteModifiers) -> None:
        ref = "N" if ref_id == BaseId.ANY else ref_id.name
        modgt = "." if smod.modified_gt == ModifiedSiteGt.NONE else modified_gt_label(smod.modified_gt)
        self.fh.write(
            f"{self.chrom}\t{pos + 1}\t{ref}\t{self.depth.value(pos)}\t"
            f"{encode_filters(smod)}\t{modgt}\t{int(smod.is_block)}\n"
        )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gvcfsite",
        description=(
            "gvcfsite: streaming per-site gVCF annotation (depth filters, reference blocks, "
            "genotype overrides) from a BAM pileup."
        ),
    )
    p.add_argument("--version", action="version", version=f"gvcfsite {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # annotate
    # -----------------
    a = sub.add_parser(
        "annotate",
        help="Annotate every covered site of a contig with gVCF filters and block flags.",
    )
    a.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    a.add_argument("--ref", required=True, type=_path_exists, help="Reference FASTA (faidx indexed).")
    a.add_argument("--contig", required=True, help="Contig to annotate.")
    a.add_argument("--begin", type=int, default=None, help="First position to report (1-based).")
    a.add_argument("--end", type=int, default=None, help="Last position to report (1-based, inclusive).")
    a.add_argument("--outdir", required=True, help="Output directory.")
    a.add_argument(
        "--chrom-depth-file",
        type=_path_exists,
        default=None,
        help="Expected depth per chromosome (chrom<TAB>depth). Omit to skip depth filters.",
    )
    a.add_argument(
        "--max-depth-factor",
        type=float,
        default=3.0,
        help="Sites deeper than this multiple of the chromosome depth are filtered (HighDepth).",
    )
    a.add_argument(
        "--max-filtered-basecall-frac",
        type=float,
        default=0.3,
        help="Sites with a larger fraction of filtered basecalls are filtered (HighDPFRatio).",
    )
    a.add_argument("--min-baseq", type=int, default=17, help="Minimum baseQ for a used basecall.")
    a.add_argument("--min-mapq", type=int, default=20, help="Minimum MAPQ for a used basecall.")
    a.add_argument(
        "--max-input-depth",
        type=int,
        default=None,
        help="Cap on reads piled up per position (default: no cap).",
    )
    a.add_argument(
        "--haploid-region",
        action="append",
        default=[],
        metavar="START-END",
        help="1-based inclusive haploid interval on the contig (repeatable).",
    )
    a.add_argument(
        "--zero-ploidy-region",
        action="append",
        default=[],
        metavar="START-END",
        help="1-based inclusive zero-ploidy interval on the contig (repeatable).",
    )
    a.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    a.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # chrom-depth
    # -----------------
    c = sub.add_parser(
        "chrom-depth",
        help="Estimate average depth per chromosome from a WGS BAM (not for exome data).",
    )
    c.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    c.add_argument("--out", required=True, help="Output chrom<TAB>depth file.")
    c.add_argument(
        "--sample-reads",
        type=int,
        default=200_000,
        help="Reads per chromosome sampled to estimate read length.",
    )
    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


def cmd_annotate(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "annotate.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("gvcfsite")
    logger.info("gvcfsite %s", __version__)

    try:
        check_bam_index(args.bam)
        check_fasta_index(args.ref)

        begin0, end0 = parse_report_range(args.begin, args.end)

        chrom_depth = None
        if args.chrom_depth_file is not None:
            depths = read_chrom_depth(args.chrom_depth_file)
            if args.contig not in depths:
                raise ValueError(
                    f"Contig '{args.contig}' not found in chromosome depth file {args.chrom_depth_file}"
                )
            chrom_depth = depths[args.contig]

        options = AnnotatorOptions(
            max_depth_factor=float(args.max_depth_factor),
            chrom_depth=chrom_depth,
            max_filtered_basecall_frac=float(args.max_filtered_basecall_frac),
            min_baseq=int(args.min_baseq),
            min_mapq=int(args.min_mapq),
            max_input_depth=args.max_input_depth,
            report_begin=begin0,
            report_end=end0,
            haploid_regions=parse_regions(args.haploid_region),
            zero_ploidy_regions=parse_regions(args.zero_ploidy_region),
        )

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            if options.max_depth is None:
                print("Depth filters: disabled (no --chrom-depth-file)")
            else:
                print(f"Depth filters: HighDepth above {options.max_depth:.1f}")
            print("Planned outputs:")
            print(f"  sites.tsv.gz -> {outdir / 'sites.tsv.gz'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            return 0

        outdir = ensure_outdir(outdir)
        sites_path = outdir / "sites.tsv.gz"

        with open_textmaybe_gzip(sites_path, "wt") as fh:
            fh.write("\t".join(_TSV_COLUMNS) + "\n")
            depth = DepthBuffer()
            annotator = SiteAnnotator(_SiteTsvWriter(fh, args.contig, depth), options, depth=depth)

            evidence = iter_pileup_evidence(
                args.bam,
                args.ref,
                args.contig,
                begin=begin0,
                end=end0,
                min_baseq=options.min_baseq,
                min_mapq=options.min_mapq,
                max_input_depth=options.max_input_depth,
            )
            run = annotate_sites(evidence, annotator, progress=True)

        summary = {
            "bam_path": args.bam,
            "ref_path": args.ref,
            "contig": args.contig,
            "begin": args.begin,
            "end": args.end,
            "chrom_depth": chrom_depth,
            "max_depth": options.max_depth,
            "sites_tsv_gz": str(sites_path),
            **run,
        }
        write_json(outdir / "summary.json", summary)

        logger.info("Sites written: %s", sites_path)
        print(str(sites_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def cmd_chrom_depth(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose, logfile=None)

    try:
        check_bam_index(args.bam)
        depths = estimate_chrom_depth(args.bam, sample_reads=int(args.sample_reads))
        if not depths:
            raise ValueError(f"No mapped reads found in {args.bam}")
        write_chrom_depth(args.out, depths)
        print(str(args.out))
        return 0
    except Exception as e:
        return _handle_error(e)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "annotate":
        return cmd_annotate(args)
    if args.cmd == "chrom-depth":
        return cmd_chrom_depth(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
