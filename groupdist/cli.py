import argparse
import sys

import pandas as pd

from . import __version__
from .errors import GroupDistanceError
from .loaders import read_distance_matrix, read_pairwise_table, read_groups, read_id_list, drop_missing
from .summary_dist import summarize, records_to_frame, format_stats

TAB_SUFFIXES = (".tsv", ".tab", ".txt")


# ================= CLI SETUP =================
def build_parser():
    parser = argparse.ArgumentParser(
        prog="groupdist",
        description="Summarize pairwise genetic distances within and between groups of sequences.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-d", "--distances", type=str,
                        help="Path to a square distance matrix (header row, sequence IDs in the first column)")
    source.add_argument("-p", "--pairwise", type=str,
                        help="Path to a tab-separated pairwise table without header: id1, id2, distance")
    parser.add_argument("-g", "--groups", type=str, required=True,
                        help="Path to the grouping table (sequence_id, group) with a header row")
    parser.add_argument("-o", "--output_file", type=str, required=True,
                        help="Path to write the summary table (.tsv/.tab/.txt for tabs, otherwise CSV)")
    parser.add_argument("-e", "--exclude", type=str,
                        help="Path to a list of sequence IDs to leave out, one per line")
    parser.add_argument("--drop-missing", action="store_true",
                        help="Drop grouped sequences that are absent from the matrix instead of failing")
    parser.add_argument("--normalize-names", action="store_true",
                        help="Reduce file-path IDs in a pairwise table to their base name")
    parser.add_argument("--sep", type=str, default="_",
                        help="Separator between group names in inter-group labels (default: _)")
    parser.add_argument("--formatted", action="store_true",
                        help="Round the statistics and add a 'mean +/- sd' column")
    parser.add_argument("--precision", type=int, default=2,
                        help="Decimal places used with --formatted (default: 2)")
    parser.add_argument("-j", "--processes", type=int, default=1,
                        help="Worker processes used for the group pairs (default: 1)")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run(args):
    say = (lambda *a, **k: None) if args.quiet else print

    # 1. Load the distances
    if args.distances:
        say(f"Reading distance matrix from {args.distances}...")
        matrix = read_distance_matrix(args.distances)
    else:
        say(f"Reading pairwise distances from {args.pairwise}...")
        matrix = read_pairwise_table(args.pairwise, normalize=args.normalize_names)
    say(f"  Matrix covers {len(matrix)} sequences.")

    # 2. Load the grouping and apply the caller-side filters
    say(f"Reading groups from {args.groups}...")
    groups = read_groups(args.groups)
    if args.exclude:
        excluded = read_id_list(args.exclude)
        groups = groups.without(excluded)
        say(f"  Excluded {len(excluded)} listed sequence IDs.")
    if args.drop_missing:
        groups, dropped = drop_missing(groups, matrix)
        if dropped:
            print(f"Warning: {len(dropped)} grouped sequences are not in the matrix and were dropped: "
                  f"{', '.join(dropped)}", file=sys.stderr)
    say(f"Loaded {len(groups)} sequences in {len(groups.groups)} groups.")

    # 3. Summarize
    records = summarize(matrix, groups, sep=args.sep, processes=args.processes, progress=args.progress)
    output_df = records_to_frame(records)
    if args.formatted:
        output_df = format_stats(output_df, precision=args.precision)

    # 4. Save
    out_sep = "\t" if args.output_file.lower().endswith(TAB_SUFFIXES) else ","
    output_df.to_csv(args.output_file, sep=out_sep, index=False)
    say(f"{len(output_df)} comparisons summarized.")
    say(f"Summary saved to {args.output_file}")
    return output_df


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except GroupDistanceError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, UnicodeDecodeError, pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        print(f"[ERROR] Failed to read input: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
