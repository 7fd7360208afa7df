import argparse
import asyncio
import json
from pathlib import Path

from . import __version__
from .benchmark import DEFAULT_VERSION, run_all_benchmarks, run_benchmark
from .cleanup import DEFAULT_DAYS, purge_stale_cache
from .clustering import embed_missing_jobs, get_similar_vacancies, run_clustering
from .config import Settings
from .database import init_database
from .env import load_env
from .errors import MatchingError
from .logger import get_logger
from .providers import OpenAIEmbeddingProvider, OpenAIScorer
from .query_expansion import QueryExpander
from .ranking import MatchingPipeline
from .storage import Store


def _store(args: argparse.Namespace, settings: Settings) -> Store:
    return Store(args.db or settings.db_path)


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> None:
    db_path = args.db or settings.db_path
    init_database(db_path)
    print(f"Database ready: {db_path}")


def cmd_rank(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    scorer = OpenAIScorer.from_settings(settings)
    expander = None
    if args.expand:
        expander = QueryExpander(store, scorer, OpenAIEmbeddingProvider.from_settings(settings))
    pipeline = MatchingPipeline.from_settings(settings, store, scorer, expander=expander)

    ranked = asyncio.run(pipeline.rank(args.vacancy))

    if args.json:
        print(json.dumps([r.to_dict() for r in ranked], indent=2, ensure_ascii=False))
        return
    if not ranked:
        print("No matching candidates (insufficient results).")
        return
    print(f"Top {len(ranked)} candidates for vacancy {args.vacancy}:\n")
    for position, r in enumerate(ranked, start=1):
        print(f"{position}. {r.candidate_id}  final={r.final_score:.3f}")
        print(f"   pre={r.pre_score:.3f} neural={r.neural_rank_score:.3f} llm={r.llm_score:.3f}")
        print(f"   {r.explanation}")
        print()


def cmd_cluster(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    summary = asyncio.run(run_clustering(
        store,
        min_cluster_size=args.min_cluster_size,
        min_samples=args.min_samples,
        cluster_delay=settings.cluster_delay,
    ))
    print(f"Clusters: {summary.cluster_count}")
    print(f"Noise: {summary.noise_count}")


def cmd_similar(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    similar = get_similar_vacancies(store, args.vacancy, limit=args.limit)
    if not similar:
        print("Vacancy is not in any cluster.")
        return
    for s in similar:
        print(f"{s.vacancy_id}  similarity={s.similarity:.3f}")


def cmd_expand(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    expander = QueryExpander(
        store,
        OpenAIScorer.from_settings(settings),
        OpenAIEmbeddingProvider.from_settings(settings),
    )
    expanded = asyncio.run(expander.get_or_expand(args.vacancy, refresh=args.refresh))
    print(json.dumps({
        "vacancy_id": expanded.vacancy_id,
        "primary_title": expanded.primary_title,
        "alternate_titles": expanded.alternate_titles,
        "core_responsibilities": expanded.core_responsibilities,
        "skill_groups": expanded.skill_groups,
        "industry": expanded.industry,
        "expanded_keywords": expanded.expanded_keywords,
        "source": expanded.source,
        "has_enhanced_embedding": expanded.enhanced_embedding is not None,
    }, indent=2, ensure_ascii=False))


def cmd_embed_jobs(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    embedder = OpenAIEmbeddingProvider.from_settings(settings)
    count = asyncio.run(embed_missing_jobs(store, embedder, delay=settings.cluster_delay))
    print(f"Embedded {count} vacancies")


def cmd_purge_cache(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    before, after = purge_stale_cache(store, days=args.days)
    print(f"Removed {before - after} stale cache rows, {after} remaining")


def cmd_benchmark_truth(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    store.get_vacancy(args.vacancy)
    store.set_benchmark_ground_truth(args.vacancy, args.candidates)
    count = len(store.get_benchmark_ground_truth(args.vacancy))
    print(f"Ground truth for {args.vacancy}: {count} relevant candidates")


def cmd_benchmark(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    pipeline = MatchingPipeline.from_settings(settings, store, OpenAIScorer.from_settings(settings))

    if args.all:
        results = asyncio.run(run_all_benchmarks(store, pipeline, version=args.score_version))
    else:
        metrics = asyncio.run(run_benchmark(store, pipeline, args.vacancy, version=args.score_version))
        results = {args.vacancy: metrics}

    if args.json:
        print(json.dumps({vacancy_id: m.to_dict() for vacancy_id, m in results.items()}, indent=2))
        return
    if not results:
        print("No benchmark jobs found.")
        return
    for vacancy_id, m in results.items():
        print(f"{vacancy_id} ({args.score_version}): {m.total_retrieved_candidates} retrieved, "
              f"{m.total_relevant_candidates} relevant")
        print(f"   P@5={m.precision_5:.3f} P@10={m.precision_10:.3f} R@5={m.recall_5:.3f} R@10={m.recall_10:.3f}")
        print(f"   nDCG@5={m.ndcg_5:.3f} nDCG@10={m.ndcg_10:.3f} MRR={m.mrr:.3f}")


def cmd_benchmark_results(args: argparse.Namespace, settings: Settings) -> None:
    store = _store(args, settings)
    rows = store.list_benchmark_results(vacancy_id=args.vacancy, version=args.score_version)
    if not rows:
        print("No benchmark results.")
        return
    for row in rows:
        print(
            f"{row.created_at:%Y-%m-%d %H:%M}  {row.vacancy_id} ({row.version})  "
            f"P@10={row.precision_10:.3f} R@10={row.recall_10:.3f} nDCG@10={row.ndcg_10:.3f} MRR={row.mrr:.3f}"
        )


def main():
    # Load .env if present (OPENAI_API_KEY, TALENTMATCH_* settings)
    load_env()
    parser = argparse.ArgumentParser(prog="talentmatch", description="Candidate-to-vacancy matching CLI")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", type=Path, help="SQLite database path (default: TALENTMATCH_DB_PATH or data/talentmatch.db)")

    subparsers = parser.add_subparsers(dest="command")
    init = subparsers.add_parser("init-db", help="Create database tables")
    init.set_defaults(func=cmd_init_db)

    rnk = subparsers.add_parser("rank", help="Rank candidates for a vacancy")
    rnk.add_argument("--vacancy", required=True, help="Vacancy id")
    rnk.add_argument("--json", action="store_true", help="Print results as JSON")
    rnk.add_argument("--expand", action="store_true", help="Compute enhanced query similarity via query expansion")
    rnk.set_defaults(func=cmd_rank)

    clu = subparsers.add_parser("cluster", help="Cluster vacancies by combined embedding")
    clu.add_argument("--min-cluster-size", type=int, default=5, help="Minimum cluster size (default 5)")
    clu.add_argument("--min-samples", type=int, default=2, help="Minimum samples (default 2)")
    clu.set_defaults(func=cmd_cluster)

    sim = subparsers.add_parser("similar", help="List vacancies from the same cluster")
    sim.add_argument("--vacancy", required=True, help="Vacancy id")
    sim.add_argument("--limit", type=int, default=10, help="Maximum results (default 10)")
    sim.set_defaults(func=cmd_similar)

    exp = subparsers.add_parser("expand", help="Expand a vacancy into a structured query")
    exp.add_argument("--vacancy", required=True, help="Vacancy id")
    exp.add_argument("--refresh", action="store_true", help="Ignore the cached expansion")
    exp.set_defaults(func=cmd_expand)

    emb = subparsers.add_parser("embed-jobs", help="Embed vacancies lacking a combined vector")
    emb.set_defaults(func=cmd_embed_jobs)

    prg = subparsers.add_parser("purge-cache", help="Delete stale match cache rows")
    prg.add_argument("--days", type=int, default=DEFAULT_DAYS, help=f"Keep rows written within N days (default {DEFAULT_DAYS})")
    prg.set_defaults(func=cmd_purge_cache)

    gt = subparsers.add_parser("benchmark-truth", help="Label the relevant candidates for a benchmark vacancy")
    gt.add_argument("--vacancy", required=True, help="Vacancy id")
    gt.add_argument("--candidates", nargs="+", required=True, help="Relevant candidate ids")
    gt.set_defaults(func=cmd_benchmark_truth)

    bench = subparsers.add_parser("benchmark", help="Measure ranking quality against labelled shortlists")
    target = bench.add_mutually_exclusive_group(required=True)
    target.add_argument("--vacancy", help="Vacancy id")
    target.add_argument("--all", action="store_true", help="Run every benchmark job")
    bench.add_argument("--score-version", default=DEFAULT_VERSION, help=f"Scoring version label (default {DEFAULT_VERSION})")
    bench.add_argument("--json", action="store_true", help="Print metrics as JSON")
    bench.set_defaults(func=cmd_benchmark)

    hist = subparsers.add_parser("benchmark-results", help="List stored benchmark runs, newest first")
    hist.add_argument("--vacancy", help="Only this vacancy")
    hist.add_argument("--score-version", help="Only this scoring version")
    hist.set_defaults(func=cmd_benchmark_results)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        settings = Settings.from_env()
    except MatchingError as e:
        raise SystemExit(f"Configuration error: {e}")

    logger = get_logger()
    logger.configure(level=settings.log_level, log_dir=settings.log_dir)

    try:
        args.func(args, settings)
    except MatchingError as e:
        logger.error(f"{args.command} failed: {e}", error_type=type(e).__name__)
        raise SystemExit(f"Error: {e}")
    finally:
        logger.log_metrics_summary()


if __name__ == "__main__":
    main()
