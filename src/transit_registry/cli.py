"""CLI for transit-registry: init, status, versions, history and doctor commands."""

import argparse
import asyncio
import platform
import sys
from importlib.metadata import version as pkg_version
from pathlib import Path

from .config import Config, load_config
from .logging_config import setup_logging
from .schedules.errors import RegistryError
from .schedules.store import ScheduleStore
from .views import render_history, render_status, render_versions

CORE_DEPS = ["aiosqlite", "platformdirs", "pydantic", "rich"]


async def _open_store(config: Config, admin: str | None = None) -> ScheduleStore:
	store = ScheduleStore(str(config.db_path))
	await store.init(admin=admin)
	return store


def cmd_init(args: argparse.Namespace) -> None:
	"""Create the registry database and seed the admin."""
	config = load_config()
	setup_logging(config.log_level, config.log_dir)
	admin = args.admin or config.admin_principal

	async def _run() -> str | None:
		store = await _open_store(config, admin=admin)
		try:
			return await store.get_admin()
		finally:
			await store.close()

	current = asyncio.run(_run())
	print(f"Registry: {config.db_path}")
	print(f"Admin:    {current}")
	if current != admin:
		print(f"  Ledger already initialized; '{admin}' was not seeded.")


def cmd_status(args: argparse.Namespace) -> None:
	"""Show admin, active version and record counts."""
	config = load_config()

	async def _run():
		store = await _open_store(config)
		try:
			counts = await store.get_counts()
			admin = await store.get_admin()
			active_id = await store.get_active_schedule_version()
			active = await store.get_schedule_version(active_id) if active_id is not None else None
			return counts, admin, active
		finally:
			await store.close()

	counts, admin, active = asyncio.run(_run())
	render_status(counts, admin, active)


def cmd_versions(args: argparse.Namespace) -> None:
	"""List schedule versions."""
	config = load_config()

	async def _run():
		store = await _open_store(config)
		try:
			return await store.list_schedule_versions(status=args.status)
		finally:
			await store.close()

	try:
		versions = asyncio.run(_run())
	except RegistryError as e:
		print(f"Error: {e}")
		sys.exit(2)
	render_versions(versions)


def cmd_history(args: argparse.Namespace) -> None:
	"""Show the audit trail for one entity."""
	config = load_config()

	async def _run():
		store = await _open_store(config)
		try:
			return await store.get_history(args.entity, args.key)
		finally:
			await store.close()

	render_history(asyncio.run(_run()))


def _check_database(db_path: Path) -> tuple[str, str | None]:
	"""Check the registry database. Returns (status, issue_or_none)."""
	if not db_path.exists():
		return "not initialized (run 'transit-registry init')", None

	async def _run():
		store = ScheduleStore(str(db_path))
		await store.init()
		try:
			return await store.get_admin(), await store.get_counts()
		finally:
			await store.close()

	try:
		admin, counts = asyncio.run(_run())
	except Exception as e:
		return f"UNREADABLE ({e})", f"registry database unreadable: {e}"
	if admin is None:
		return "no admin seeded", "registry has no admin; run 'transit-registry init --admin <principal>'"
	return f"ok ({counts['schedule_versions']} versions, {counts['ledger_events']} events)", None


def cmd_doctor(args: argparse.Namespace) -> None:
	"""Health check - verify installation and configuration."""
	print("transit-registry doctor")
	print(f"{'=' * 40}")

	config = load_config()
	issues: list[str] = []

	py_ver = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
	print(f"  Python:       {py_ver}")
	print(f"  Platform:     {platform.system()} {platform.machine()}")
	print()

	print("  Core deps:")
	for dep in CORE_DEPS:
		try:
			print(f"    {dep:22s} {pkg_version(dep)}")
		except Exception:
			print(f"    {dep:22s} NOT INSTALLED")
			issues.append(f"{dep} package not installed")
	print()

	print("  Paths:")
	print(f"    config:  {config.config_dir}")
	print(f"    data:    {config.data_dir}")
	print(f"    logs:    {config.log_dir}")
	print()

	print("  Registry:")
	db_status, db_issue = _check_database(config.db_path)
	print(f"    {db_status}")
	if db_issue:
		issues.append(db_issue)
	print()

	if issues:
		print(f"{len(issues)} issue(s):")
		for issue in issues:
			print(f"  - {issue}")
		sys.exit(1)
	print("All checks passed.")


def main() -> None:
	"""CLI entry point."""
	parser = argparse.ArgumentParser(
		prog="transit-registry",
		description="Transit schedule registry: versions, departures and adjustments",
	)
	subparsers = parser.add_subparsers(dest="command")

	# init
	init_parser = subparsers.add_parser("init", help="Create the registry and seed the admin")
	init_parser.add_argument("--admin", type=str, default=None, help="Admin principal (default: from config)")
	init_parser.set_defaults(func=cmd_init)

	# status
	status_parser = subparsers.add_parser("status", help="Registry summary")
	status_parser.set_defaults(func=cmd_status)

	# versions
	versions_parser = subparsers.add_parser("versions", help="List schedule versions")
	versions_parser.add_argument("--status", type=str, default=None, help="Filter by status (e.g. 'active')")
	versions_parser.set_defaults(func=cmd_versions)

	# history
	history_parser = subparsers.add_parser("history", help="Audit trail for an entity")
	history_parser.add_argument("entity", help="Entity, e.g. schedule_version, planner, schedule_adjustment")
	history_parser.add_argument("key", help="Entity key, composite keys joined with ':' (e.g. 1:2)")
	history_parser.set_defaults(func=cmd_history)

	# doctor
	doctor_parser = subparsers.add_parser("doctor", help="Health check")
	doctor_parser.set_defaults(func=cmd_doctor)

	args = parser.parse_args()

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.func(args)
