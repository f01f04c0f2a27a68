from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich import print
from rich.logging import RichHandler
from rich.table import Table

from .availability import suggest_meeting_times
from .config import TOP_K_CANDIDATES, MatchingConfig
from .eligibility import filter_eligible, resolve_zone
from .engine import run_all_locales, run_matching
from .exceptions import PairingEngineError
from .ingest import InMemoryCandidateSource, load_snapshot
from .matching_models import PairingProposal
from .publishers import CsvPublisher
from .scoring import score_both_directions, top_k_for_candidate


app = typer.Typer(help="Coffee chat pairing engine")


@app.callback()
def _setup(
	log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
):
	load_dotenv()
	logging.basicConfig(
		level=log_level.upper(),
		format="%(message)s",
		datefmt="[%X]",
		handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
	)


def _config() -> MatchingConfig:
	try:
		return MatchingConfig.from_env()
	except PairingEngineError as e:
		_fail(e)


def _fail(e: Exception) -> None:
	print(f"[red]Error:[/red] {e}")
	raise typer.Exit(code=1)


def _print_proposals(proposals: List[PairingProposal], title: str) -> None:
	table = Table("#", "A", "B", "A→B", "B→A", "avg", "mode", "bucket", "slots", title=title)
	for i, p in enumerate(proposals, start=1):
		table.add_row(
			str(i),
			p.user_a_id,
			p.user_b_id,
			f"{p.score_a_to_b:.3f}",
			f"{p.score_b_to_a:.3f}",
			f"{p.avg_score:.3f}",
			p.mode.value,
			p.bucket,
			"\n".join(s.label() for s in p.proposed_slots) or "-",
		)
	print(table)


@app.command()
def run(
	snapshot_path: Path = typer.Argument(..., help="Snapshot JSON (or candidates CSV)"),
	locale: str = typer.Option("UTC", help="Locale tag (IANA timezone) to match"),
	out_path: Optional[Path] = typer.Option(None, "--out", help="Write proposals to this CSV"),
):
	"""Run one matching pass for a locale."""
	config = _config()
	try:
		snapshot = load_snapshot(snapshot_path, locale=locale)
		publisher = CsvPublisher(out_path) if out_path else None
		proposals = run_matching(locale, InMemoryCandidateSource(snapshot), publisher, config)
	except PairingEngineError as e:
		_fail(e)
	_print_proposals(proposals, f"Proposals for {locale}")
	if publisher is not None:
		publisher.flush()
		print(f"[green]Saved proposals to[/green] {out_path}")


@app.command("run-all")
def run_all(
	snapshot_path: Path = typer.Argument(..., help="Snapshot JSON (or candidates CSV)"),
	out_dir: Optional[Path] = typer.Option(None, help="Write one proposals CSV per locale here"),
	workers: int = typer.Option(2, help="Locales matched concurrently"),
):
	"""Run every locale present in the snapshot."""
	config = _config()
	try:
		snapshot = load_snapshot(snapshot_path)
	except PairingEngineError as e:
		_fail(e)

	publishers = {}

	def factory(locale: str) -> Optional[CsvPublisher]:
		if out_dir is None:
			return None
		slug = locale.replace("/", "_")
		publishers[locale] = CsvPublisher(out_dir / f"proposals_{slug}.csv")
		return publishers[locale]

	results = run_all_locales(
		snapshot.locales,
		InMemoryCandidateSource(snapshot),
		publisher_factory=factory,
		config=config,
		max_workers=workers,
	)
	failed = 0
	for locale, result in results.items():
		if not result.ok:
			failed += 1
			print(f"[red]{locale} failed:[/red] {result.error}")
			continue
		_print_proposals(result.proposals, f"Proposals for {locale}")
		if locale in publishers:
			publishers[locale].flush()
	print(f"[bold]{len(results) - failed}/{len(results)} locales matched[/bold]")
	if failed:
		raise typer.Exit(code=1)


@app.command()
def score(
	snapshot_path: Path = typer.Argument(..., help="Snapshot JSON (or candidates CSV)"),
	id_a: str = typer.Argument(...),
	id_b: str = typer.Argument(...),
):
	"""Show the component breakdown for a pair in both directions."""
	config = _config()
	try:
		snapshot = load_snapshot(snapshot_path)
		a, b = snapshot.candidate(id_a), snapshot.candidate(id_b)
	except (PairingEngineError, KeyError) as e:
		_fail(e)
	a_to_b, b_to_a = score_both_directions(a, b, config)
	table = Table("component", "raw", f"{id_a}→{id_b}", f"{id_b}→{id_a}")
	for name, raw in a_to_b.components.items():
		table.add_row(name, f"{raw:.3f}", f"{a_to_b.contributions[name]:.4f}", f"{b_to_a.contributions[name]:.4f}")
	table.add_row("[bold]total[/bold]", "", f"{a_to_b.score:.4f}", f"{b_to_a.score:.4f}")
	print(table)


@app.command()
def slots(
	snapshot_path: Path = typer.Argument(..., help="Snapshot JSON (or candidates CSV)"),
	id_a: str = typer.Argument(...),
	id_b: str = typer.Argument(...),
):
	"""Suggest meeting times for two candidates."""
	config = _config()
	try:
		snapshot = load_snapshot(snapshot_path)
		a, b = snapshot.candidate(id_a), snapshot.candidate(id_b)
	except (PairingEngineError, KeyError) as e:
		_fail(e)
	today = datetime.now(timezone.utc).astimezone(resolve_zone(a.timezone)).date()
	suggestions = suggest_meeting_times(
		a.availability, b.availability, a.timezone, today, config.min_overlap_minutes, config.max_suggestions
	)
	if not suggestions:
		print("[yellow]No overlapping availability[/yellow]")
		return
	for s in suggestions:
		print(f" - {s.label()}")


@app.command()
def recommend(
	snapshot_path: Path = typer.Argument(..., help="Snapshot JSON (or candidates CSV)"),
	candidate_id: str = typer.Argument(...),
	top_k: int = typer.Option(15, help="Number of candidates to show", max=TOP_K_CANDIDATES),
):
	"""Rank the best partners for one candidate, ignoring eligibility and constraints."""
	config = _config()
	try:
		snapshot = load_snapshot(snapshot_path)
		recs = top_k_for_candidate(snapshot, candidate_id, k=top_k, config=config)
	except (PairingEngineError, KeyError) as e:
		_fail(e)
	table = Table("partner", "score", "topics", "industry", "profession", "goal", "seniority")
	for r in recs:
		c = r.components
		table.add_row(
			r.to_id,
			f"{r.score:.3f}",
			*(f"{c[k]:.2f}" for k in ["topics", "industry", "profession", "goal", "seniority"]),
		)
	print(table)


@app.command()
def check(
	snapshot_path: Path = typer.Argument(..., help="Snapshot JSON (or candidates CSV)"),
):
	"""Report which candidates are eligible this run and why others are not."""
	config = _config()
	try:
		snapshot = load_snapshot(snapshot_path)
	except PairingEngineError as e:
		_fail(e)
	report = filter_eligible(snapshot, config)
	table = Table("candidate", "status")
	for c in report.eligible:
		table.add_row(c.id, "[green]eligible[/green]")
	for cid, reason in sorted(report.excluded.items()):
		table.add_row(cid, f"[yellow]{reason}[/yellow]")
	print(table)


if __name__ == "__main__":
	app()
