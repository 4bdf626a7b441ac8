#!/usr/bin/env python3
"""CLI for the Elementary Automata Discovery toolkit."""

import argparse
import sys

from .automaton import DEFAULT_RULE, INTERESTING_RULES, Rule, neighborhood_pattern
from .cycles import classify_cycle, cycle_survey, find_cycle
from .dependency import (
    CLASS_NAMES, boolean_function, compare_dependencies, dependency_survey,
)
from .inference import collect_transitions, infer_rule
from .locality import TRUE_RADIUS, center_function, infer_radius, radius_survey
from .metrics import (
    COMPRESSION_CLASSES, ENTROPY_CLASSES, classify_compression, compression_ratio,
    compression_survey, entropy_profile, entropy_survey, evaluate_rule,
)
from .storage import RuleCatalog
from .visualize import (
    format_rule_columns, format_table, plot_entropy, render_trace,
    render_transition_table, save_spacetime_image,
)


def lenient(kind, default, valid=lambda v: True):
    """argparse type that falls back to `default` instead of rejecting bad input."""
    def convert(text):
        try:
            value = kind(text)
        except (TypeError, ValueError):
            return default
        return value if valid(value) else default
    return convert


def rule_arg(default=DEFAULT_RULE):
    return lenient(int, default, lambda v: 0 <= v <= 255)


def positive(default):
    return lenient(int, default, lambda v: v >= 1)


def count(default):
    return lenient(int, default, lambda v: v >= 0)


def probability(default=0.0):
    return lenient(float, default, lambda v: 0.0 <= v <= 1.0)


def _open_catalog(args):
    return RuleCatalog(args.database) if getattr(args, "database", None) else None


def cmd_run(args):
    """Print the generation-by-generation trace and the rule's transition table."""
    rule = Rule(args.rule)
    for line in render_trace(rule, args.width, args.generations):
        print(line)
    print()
    for line in render_transition_table(rule):
        print(line)

    if args.image:
        path = save_spacetime_image(rule, args.image, args.width, args.generations, args.cell_size)
        print(f"\nSaved spacetime diagram to: {path}")


def cmd_analyze(args):
    """Cycle analysis of all 256 rules."""
    print(f"Analyzing all 256 rules (width={args.width}, max_steps={args.max_steps})")
    survey = cycle_survey(args.width, args.max_steps, verbose=args.verbose)

    rows = []
    for number in survey.notable():
        a = survey.analyses[number]
        rows.append([
            number, a.transient, a.period if a.resolved else ">max",
            "yes" if a.died else "no", f"{a.final_density:.3f}",
        ])
    for line in format_table(["Rule", "Transient", "Period", "Died?", "Density"], rows, [4, 10, 8, 6, 8]):
        print(line)
    print("-" * 50)

    counts = survey.class_counts
    print("Summary:")
    print(f"  Dies:                {counts['dies']}")
    print(f"  Short cycle (<=10):  {counts['short cycle']}")
    print(f"  Long cycle (>10):    {counts['long cycle']}")
    print(f"  No cycle found:      {counts['unresolved']}")

    catalog = _open_catalog(args)
    if catalog is not None:
        catalog.record_many({
            number: dict(a.to_dict(), cycle_class=classify_cycle(a))
            for number, a in survey.analyses.items()
        })
        print(f"\nRecorded {len(survey.analyses)} rules in {args.database}")


def cmd_cycle(args):
    """Cycle analysis of a single rule."""
    print(f"Analyzing Rule {args.rule} (width={args.width}, max_steps={args.max_steps})")
    analysis = find_cycle(Rule(args.rule), args.width, args.max_steps)

    print(f"  Transient length: {analysis.transient}")
    if analysis.resolved:
        print(f"  Cycle period: {analysis.period}")
    else:
        print(f"  Cycle period: not found within {args.max_steps} steps")
    print(f"  Died: {'yes' if analysis.died else 'no'}")
    print(f"  Final density: {analysis.final_density:.3f}")
    print(f"  Class: {classify_cycle(analysis)}")


def cmd_entropy(args):
    """Block entropy over time for one rule."""
    rule = Rule(args.rule)
    print(f"Entropy analysis: Rule {args.rule} (width={args.width}, blocks={args.block_size})")
    print(f"Max possible entropy: {float(args.block_size):.3f} bits")

    profile = entropy_profile(rule, args.width, args.generations, args.block_size)
    rows = []
    for g, (h, d) in enumerate(zip(profile.entropies, profile.densities)):
        # First few, every 10th and the last generation
        if g <= 5 or g % 10 == 0 or g == args.generations:
            rows.append([g, f"{h:.4f}", f"{d:.3f}"])
    for line in format_table(["Gen", "Entropy", "Density"], rows, [5, 8, 8]):
        print(line)

    print("-" * 25)
    print(f"Mean entropy:  {profile.mean:.4f}")
    print(f"Std dev:       {profile.std:.4f}")
    print(f"Range:         [{profile.min:.4f}, {profile.max:.4f}]")
    print(f"Normalized:    {100.0 * profile.normalized_mean:.1f}% of max")

    if args.plot:
        plot_entropy(profile.entropies, args.block_size, f"Rule {args.rule} block entropy", args.plot)
        print(f"\nSaved entropy plot to: {args.plot}")


def cmd_entropy_survey(args):
    """Classify all rules by their entropy signature."""
    block_size = 3
    print(f"Entropy survey (width={args.width}, gens={args.generations}, blocks={block_size})")
    profiles = entropy_survey(args.width, args.generations, block_size, verbose=args.verbose)

    groups = {name: [] for name in ENTROPY_CLASSES}
    rows = []
    for number, profile in profiles.items():
        cls = profile.classify()
        groups[cls].append(number)
        if cls in ("fractal", "complex", "chaotic"):
            rows.append([number, f"{profile.normalized_mean:.3f}", f"{profile.normalized_std:.3f}", cls])
    for line in format_table(["Rule", "Mean", "StdDev", "Class"], rows, [4, 7, 7, 8]):
        print(line)

    print("-" * 32)
    print("Classification:")
    print(f"  Dead:     {len(groups['dead'])} rules")
    print(f"  Periodic: {len(groups['periodic'])} rules")
    print(f"  Fractal:  {len(groups['fractal'])} rules ({groups['fractal'][:5]}...)")
    print(f"  Complex:  {len(groups['complex'])} rules")
    print(f"  Chaotic:  {len(groups['chaotic'])} rules ({groups['chaotic']})")

    catalog = _open_catalog(args)
    if catalog is not None:
        catalog.record_many({number: p.to_dict() for number, p in profiles.items()})
        print(f"\nRecorded {len(profiles)} rules in {args.database}")


def cmd_compress(args):
    """Compression analysis for one rule."""
    print(f"Compression analysis: Rule {args.rule} (width={args.width}, gens={args.generations})")
    result = compression_ratio(Rule(args.rule), args.width, args.generations)

    print(f"  Raw size:        {result.raw_bits} bits")
    print(f"  Compressed:      {result.compressed_bits} bits")
    print(f"  Ratio:           {result.ratio:.3f} (lower = more compressible)")
    print(f"  Incompressible:  {result.ratio * 100.0:.1f}%")
    print(f"  Class:           {classify_compression(result.ratio)}")


def cmd_compress_survey(args):
    """Rank all rules by compression ratio."""
    print(f"Compression survey (width={args.width}, gens={args.generations})")
    results = compression_survey(args.width, args.generations, verbose=args.verbose)

    rows = [
        [number, f"{r.ratio:.3f}", classify_compression(r.ratio)]
        for number, r in results if r.ratio >= 0.05
    ]
    for line in format_table(["Rule", "Ratio", "Class"], rows, [4, 8, 12]):
        print(line)

    print("-" * 28)
    counts = {name: 0 for name in COMPRESSION_CLASSES}
    for _, r in results:
        counts[classify_compression(r.ratio)] += 1
    print("Classification:")
    print(f"  Trivial (<5%):       {counts['trivial']}")
    print(f"  Periodic (5-20%):    {counts['periodic']}")
    print(f"  Structured (20-50%): {counts['structured']}")
    print(f"  Complex (50-80%):    {counts['complex']}")
    print(f"  Chaotic (>80%):      {counts['chaotic']}")

    nontrivial = [(n, r) for n, r in results if r.ratio >= 0.05]
    if nontrivial:
        print(f"\nMost compressible: Rule {nontrivial[0][0]} ({nontrivial[0][1].ratio * 100:.1f}%)")
    print(f"Least compressible: Rule {results[-1][0]} ({results[-1][1].ratio * 100:.1f}%)")

    catalog = _open_catalog(args)
    if catalog is not None:
        catalog.record_many({number: r.to_dict() for number, r in results})
        print(f"\nRecorded {len(results)} rules in {args.database}")


def cmd_infer(args):
    """Recover a rule from observations and test how it generalizes."""
    print(f"Rule inference test (true rule={args.rule}, width={args.width}, "
          f"gens={args.generations}, noise={args.noise})")
    true_rule = Rule(args.rule)
    result = infer_rule(true_rule, args.width, args.generations, noise=args.noise)

    print("\nNeighborhood observations:")
    rows = []
    for code in range(8):
        inferred_bit = (result.inferred_rule >> code) & 1
        true_bit = true_rule.output(code)
        rows.append([
            neighborhood_pattern(code), result.observations[code], f"{result.probability(code):.3f}",
            inferred_bit, true_bit, "ok" if inferred_bit == true_bit else "MISS",
        ])
    for line in format_table(["NHD", "Count", "P(1)", "Inferred", "True", ""], rows, [5, 7, 6, 9, 5, 4]):
        print(line)
    print("-" * 45)
    print(f"Inferred rule: {result.inferred_rule}")
    print(f"True rule:     {result.true_rule}")
    print(f"Match:         {'EXACT' if result.exact else 'MISMATCH'}")
    for note in result.notes:
        print(f"Note:          {note}")

    g = result.generalization
    print("\nComparison (out-of-distribution generalization):")
    rows = [
        ["Local (causal)", f"{g.causal_sparse * 100:.2f}%", f"{g.causal_dense * 100:.2f}%"],
        ["Global (correlational)", f"{g.correlational_sparse * 100:.2f}%", f"{g.correlational_dense * 100:.2f}%"],
    ]
    for line in format_table(["Learner", "Sparse 10%", "Dense 90%"], rows, [22, 10, 10], align_left=(0,)):
        print("  " + line)

    if result.exact:
        print("\n-> Rule recovery successful: learned the causal mechanism, not just correlations.")
    else:
        print("\n-> Rule recovery failed: noise or insufficient data prevented causal learning.")


def cmd_radius(args):
    """Infer the neighborhood radius of one rule from its transitions."""
    print(f"Radius inference (true rule={args.rule}, width={args.width}, gens={args.generations})")
    print(f"Testing radii 0 to {args.max_radius}...\n")

    transitions = collect_transitions(Rule(args.rule), args.width, args.generations)
    print(f"Collected {len(transitions)} row transitions\n")

    result = infer_radius(transitions, args.max_radius)
    for check in result.checks:
        print(f"Radius {check.radius} (window size {check.window_size}):")
        print(f"  Unique windows observed: {check.unique_windows} / {check.possible_windows} possible")
        print(f"  Consistent: {'YES' if check.consistent else 'NO'} ({check.consistency_rate * 100:.1f}%)")
        if not check.consistent:
            print(f"  Inconsistent windows: {len(check.inconsistent)} (examples below)")
            for pattern, zeros, ones in check.examples():
                print(f"    {pattern} -> 0 ({zeros} times), 1 ({ones} times)")
        print()

    if result.found:
        print(f"-> Inferred radius: {result.radius}")
    else:
        print(f"-> No consistent radius up to {args.max_radius}")
    print(f"  (True ECA radius is {TRUE_RADIUS}): {result.verdict()}")


def cmd_radius_survey(args):
    """Effective radius of every rule."""
    max_radius = 2
    print(f"Radius survey (width={args.width}, gens={args.generations})")
    print("Finding effective radius for all 256 rules...\n")
    survey = radius_survey(args.width, args.generations, max_radius=max_radius, verbose=args.verbose)

    radius_0 = survey.rules_with_radius(0)
    beyond = survey.rules_beyond(1)
    print("Results:")
    print(f"  Effective radius 0: {len(radius_0)} rules")
    print(f"  Effective radius 1: {len(survey.rules_with_radius(1))} rules")
    print(f"  Effective radius >1: {len(beyond)} rules")

    print("\nRules with effective radius 0:")
    for line in format_rule_columns(radius_0, per_line=16, indent=2):
        print(line)
    if beyond:
        print("\nRules with effective radius >1 (unexpected for elementary rules):")
        for number in beyond:
            print(f"  Rule {number}")

    print("\nRadius-0 rules whose output is a function of the center cell:")
    for number in radius_0:
        name = center_function(Rule(number))
        if name is not None:
            print(f"  Rule {number:>3}: {name}")

    catalog = _open_catalog(args)
    if catalog is not None:
        catalog.record_many({
            number: {"effective_radius": r if r is not None else f">{max_radius}"}
            for number, r in survey.radii.items()
        })
        print(f"\nRecorded {len(survey.radii)} rules in {args.database}")


def cmd_dependency(args):
    """Group all rules by the neighborhood positions they depend on."""
    print("Dependency analysis for all 256 rules")
    print("Checking which neighborhood positions are necessary...\n")
    groups = dependency_survey()

    for name in CLASS_NAMES.values():
        rules = groups[name]
        if not rules:
            continue
        print(f"{name}: {len(rules)} rules")
        if len(rules) <= 16:
            for line in format_rule_columns(rules):
                print(line)
        else:
            print(f"    (first 8: {rules[:8]}...)")
        print()

    print("Center-ignoring rules (left + right only):")
    for number in groups[CLASS_NAMES[(True, False, True)]]:
        table, name = boolean_function(Rule(number))
        print(f"  Rule {number:>3}: f(l,r) = {table} ({name})")

    catalog = _open_catalog(args)
    if catalog is not None:
        catalog.record_many({
            number: {"dependency_class": name}
            for name, rules in groups.items() for number in rules
        })
        print(f"\nRecorded 256 rules in {args.database}")


def _outcome(majority):
    return "unseen" if majority is None else int(majority)


def cmd_dependency_infer(args):
    """Infer dependencies from observations and compare with the rule table."""
    print(f"Dependency inference from observations (rule={args.rule})")
    print("(Not examining the rule directly, only observing behavior)\n")
    comparison = compare_dependencies(Rule(args.rule), args.width, args.generations)
    inferred = comparison.inferred

    print(f"Collected {inferred.samples} cell observations\n")
    for position in ("left", "center", "right"):
        print(f"Testing whether {position.upper()} matters:")
        diffs = inferred.differences[position]
        for setting, out0, out1 in diffs:
            print(f"  At ({setting}): {position}=0 -> {_outcome(out0)}, "
                  f"{position}=1 -> {_outcome(out1)}, DIFFERENT")
        if not diffs:
            print(f"  No differences found, {position.upper()} does NOT matter")
        print()

    print(f"-> Inferred dependencies: {inferred.dependencies.describe()}")
    print(f"\nGround truth (from rule {args.rule} = 0b{Rule(args.rule).to_binary()}):")
    print(f"  True dependencies: {comparison.actual.describe()}")
    print(f"  Match: {'YES' if comparison.agree else 'NO'}")


def cmd_evaluate(args):
    """Show every single-run metric for one rule."""
    rule = Rule(args.rule)
    print(f"Evaluating {rule.to_string()} (width={args.width}, gens={args.generations})\n")
    metrics = evaluate_rule(rule, args.width, args.generations)

    print("Metrics:")
    print(f"  Lambda parameter:   {metrics.lambda_param:.4f}")
    print(f"  Block entropy (3):  {metrics.block_entropy:.4f}")
    print(f"  Temporal change:    {metrics.temporal_change:.4f}")
    print(f"  Compression ratio:  {metrics.compression_ratio:.4f}")
    print(f"  Final density:      {metrics.final_density:.4f}")

    catalog = _open_catalog(args)
    if catalog is not None:
        catalog.record(rule.number, metrics.to_dict())
        print(f"\nRecorded rule {rule.number} in {args.database}")


def cmd_interesting(args):
    """Quick single-line summary of the class 3 and 4 reference rules."""
    rows = []
    for number in INTERESTING_RULES:
        rule = Rule(number)
        cycle = find_cycle(rule, args.width, args.max_steps)
        ratio = compression_ratio(rule, args.width, args.generations).ratio
        rows.append([number, cycle.period if cycle.resolved else ">max", f"{ratio:.3f}", classify_compression(ratio)])
    for line in format_table(["Rule", "Period", "Ratio", "Class"], rows, [4, 8, 8, 12]):
        print(line)


def cmd_leaderboard(args):
    """Show catalog entries ranked by a metric."""
    catalog = RuleCatalog(args.database)

    if len(catalog) == 0:
        print("No rules recorded yet. Run a survey with --database first!")
        return

    entries = catalog.get_leaderboard(args.metric, args.top, ascending=args.ascending)
    if not entries:
        print(f"No recorded rules have metric '{args.metric}'.")
        return

    print(f"Top {len(entries)} rules by {args.metric}:\n")
    print(f"{'Rank':<6}{'Rule':<6}{args.metric:<22}{'Lambda':<10}")
    print("-" * 44)
    for i, e in enumerate(entries, 1):
        print(f"{i:<6}{e.rule:<6}{e.metrics[args.metric]:<22.4f}{e.metrics.get('lambda_param', 0):<10.4f}")


def cmd_export(args):
    """Export the catalog to CSV."""
    catalog = RuleCatalog(args.database)

    if len(catalog) == 0:
        print("No rules to export.")
        return

    catalog.export_csv(args.output)
    print(f"Exported {len(catalog)} rules to {args.output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Elementary Automata Discovery - explore and analyze the 256 elementary rules"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add(name, func, help_text, database=False, verbose=False):
        p = subparsers.add_parser(name, help=help_text)
        if database:
            p.add_argument("--database", type=str, default=None, help="Record results in this catalog file")
        if verbose:
            p.add_argument("-v", "--verbose", action="store_true", help="Print survey progress")
        p.set_defaults(func=func)
        return p

    # Run command
    p = add("run", cmd_run, "Print a rule's evolution from a single live cell")
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE, help="Rule number 0-255")
    p.add_argument("width", nargs="?", type=positive(79), default=79, help="Row width")
    p.add_argument("generations", nargs="?", type=count(40), default=40, help="Generations to show")
    p.add_argument("--image", type=str, default=None, help="Also save a PNG spacetime diagram")
    p.add_argument("--cell-size", type=positive(4), default=4, help="Cell size in pixels")

    # Cycle commands
    p = add("analyze", cmd_analyze, "Cycle analysis of all 256 rules", database=True, verbose=True)
    p.add_argument("width", nargs="?", type=positive(31), default=31)
    p.add_argument("max_steps", nargs="?", type=count(1000), default=1000)

    p = add("cycle", cmd_cycle, "Cycle analysis of one rule")
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE)
    p.add_argument("width", nargs="?", type=positive(31), default=31)
    p.add_argument("max_steps", nargs="?", type=count(10000), default=10000)

    # Entropy commands
    p = add("entropy", cmd_entropy, "Block entropy of one rule over time")
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE)
    p.add_argument("width", nargs="?", type=positive(79), default=79)
    p.add_argument("generations", nargs="?", type=count(100), default=100)
    p.add_argument("block_size", nargs="?", type=positive(3), default=3)
    p.add_argument("--plot", type=str, default=None, help="Save an entropy plot to this path")

    p = add("entropy-survey", cmd_entropy_survey, "Classify all rules by entropy", database=True, verbose=True)
    p.add_argument("width", nargs="?", type=positive(79), default=79)
    p.add_argument("generations", nargs="?", type=count(100), default=100)

    # Compression commands
    p = add("compress", cmd_compress, "Compression ratio of one rule")
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE)
    p.add_argument("width", nargs="?", type=positive(79), default=79)
    p.add_argument("generations", nargs="?", type=count(200), default=200)

    p = add("compress-survey", cmd_compress_survey, "Rank all rules by compression", database=True, verbose=True)
    p.add_argument("width", nargs="?", type=positive(79), default=79)
    p.add_argument("generations", nargs="?", type=count(200), default=200)

    # Inference commands
    p = add("infer", cmd_infer, "Infer a rule from observed transitions")
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE)
    p.add_argument("width", nargs="?", type=positive(50), default=50)
    p.add_argument("generations", nargs="?", type=count(20), default=20)
    p.add_argument("noise", nargs="?", type=probability(), default=0.0)

    p = add("radius", cmd_radius, "Infer a rule's neighborhood radius")
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE)
    p.add_argument("width", nargs="?", type=positive(50), default=50)
    p.add_argument("generations", nargs="?", type=count(20), default=20)
    p.add_argument("max_radius", nargs="?", type=count(4), default=4)

    p = add("radius-survey", cmd_radius_survey, "Effective radius of all rules", database=True, verbose=True)
    p.add_argument("width", nargs="?", type=positive(50), default=50)
    p.add_argument("generations", nargs="?", type=count(20), default=20)

    add("dependency", cmd_dependency, "Which positions each rule depends on", database=True)

    p = add("dependency-infer", cmd_dependency_infer, "Infer one rule's dependencies from observations")
    p.add_argument("rule", nargs="?", type=rule_arg(90), default=90)
    p.add_argument("width", nargs="?", type=positive(50), default=50)
    p.add_argument("generations", nargs="?", type=count(30), default=30)

    # Summary commands
    p = add("evaluate", cmd_evaluate, "Show all metrics for one rule", database=True)
    p.add_argument("rule", nargs="?", type=rule_arg(), default=DEFAULT_RULE)
    p.add_argument("width", nargs="?", type=positive(79), default=79)
    p.add_argument("generations", nargs="?", type=count(200), default=200)

    p = add("interesting", cmd_interesting, "Summarize the class 3 and 4 reference rules")
    p.add_argument("width", nargs="?", type=positive(31), default=31)
    p.add_argument("max_steps", nargs="?", type=count(1000), default=1000)
    p.add_argument("generations", nargs="?", type=count(200), default=200)

    # Catalog commands
    p = add("leaderboard", cmd_leaderboard, "Show recorded rules ranked by a metric")
    p.add_argument("-m", "--metric", type=str, default="compression_ratio", help="Metric to rank by")
    p.add_argument("-n", "--top", type=positive(20), default=20, help="Number of rules to show")
    p.add_argument("--ascending", action="store_true", help="Smallest values first")
    p.add_argument("--database", type=str, default="eca_catalog.json", help="Catalog file")

    p = add("export", cmd_export, "Export the catalog to CSV")
    p.add_argument("-o", "--output", type=str, default="rules.csv", help="Output CSV file")
    p.add_argument("--database", type=str, default="eca_catalog.json", help="Catalog file")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
