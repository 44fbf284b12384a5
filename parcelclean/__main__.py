import argparse
import logging
import os
import sys

from parcelclean import clean, load_file, load_table, report_to_json, write_file, write_table
from parcelclean.conf import LOG_DIR, CleaningConf
from parcelclean.pipeline import OrderingViolationError
from parcelclean.schema import SchemaMismatchError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parcelclean", description="Clean a housing sales table")
    parser.add_argument("source", help="Input file, or a SQLAlchemy URL when --table is given")
    parser.add_argument("--table", help="Read this table from the database at SOURCE")
    parser.add_argument("--output", help="Write the cleaned table to this file")
    parser.add_argument("--output-table", help="Write the cleaned table to this table at SOURCE")
    parser.add_argument("--report", help="Write the JSON report here instead of stdout")
    parser.add_argument("--findings", help="Write parse failures and imputation conflicts to this CSV")
    parser.add_argument("--iqr-multiplier", type=float, default=CleaningConf.iqr_multiplier,
                        help="Outlier fence width in IQRs (default %(default)s)")
    parser.add_argument("--log-file", default=os.path.join(LOG_DIR, "parcelclean.log"),
                        help="Log file (default %(default)s)")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    log_dir = os.path.dirname(args.log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        filename=args.log_file,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s pid=%(process)d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    log = logging.getLogger("parcelclean")

    if args.output_table and not args.table:
        print("--output-table needs --table", file=sys.stderr)
        return 2

    class RunConf(CleaningConf):
        iqr_multiplier = args.iqr_multiplier

    try:
        if args.table:
            raw = load_table(args.source, args.table)
        else:
            raw = load_file(args.source)
        result, report = clean(raw, conf=RunConf)
    except (SchemaMismatchError, OrderingViolationError) as e:
        log.error("Cleaning aborted: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.output:
        write_file(result.df, args.output)
    if args.output_table:
        write_table(result.df, args.source, args.output_table)
    if args.findings:
        result.findings_df().to_csv(args.findings, index=False)

    text = report_to_json(report)
    if args.report:
        with open(args.report, "w") as f:
            f.write(text)
    else:
        print(text)
    log.info("Done: %d records, %d findings", len(result.df), len(result.findings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
