import argparse
import json
import logging
import sys
import typing

import etherdaw.compiler
import etherdaw.score


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Compile a score file and print a summary, or the whole timeline as JSON.
	"""

	parser = argparse.ArgumentParser(prog="etherdaw", description="Compile an EtherDAW score.")
	parser.add_argument("score", help="YAML or JSON score file")
	parser.add_argument("--start", help="first section to compile")
	parser.add_argument("--end", help="last section to compile")
	parser.add_argument("--tempo", type=float, help="override the score tempo")
	parser.add_argument("--key", help="override the score key")
	parser.add_argument("--seed", type=int, help="seed for reproducible output")
	parser.add_argument("--json", action="store_true", help="print the timeline as JSON")
	args = parser.parse_args(argv)

	try:
		score = etherdaw.score.load(args.score)
	except (OSError, etherdaw.score.ScoreError) as exc:
		logger.error(f"Cannot load {args.score}: {exc}")
		return 1

	options = etherdaw.compiler.CompileOptions(
		start_section = args.start,
		end_section = args.end,
		tempo = args.tempo,
		key = args.key,
		seed = args.seed,
	)

	try:
		result = etherdaw.compiler.compile(score, options)
	except ValueError as exc:
		logger.error(f"Cannot compile {args.score}: {exc}")
		return 1

	for diagnostic in result.diagnostics:
		logger.warning(f"{diagnostic.severity}: {diagnostic.message}")

	if args.json:
		json.dump(result.timeline.as_dict(), sys.stdout, indent=2)
		sys.stdout.write("\n")
	else:
		stats = result.stats
		print(f"Sections:    {stats.total_sections}")
		print(f"Bars:        {stats.total_bars}")
		print(f"Notes:       {stats.total_notes}")
		print(f"Instruments: {', '.join(stats.instruments)}")
		print(f"Duration:    {stats.duration_seconds:.2f}s")

	return 0


if __name__ == "__main__":
	sys.exit(main())
