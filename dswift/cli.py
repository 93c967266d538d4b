from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import DSwiftUserError
from .generation.generator import generated_path_for
from .generation.group import GroupGenerator
from .info import ENGINE_TOOLS_VERSION
from .project import SwiftProject, load_project
from .report_schema import FileEntry, FileStatus, Report
from .version import tool_version

_LOG = logging.getLogger("dswift")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose or os.environ.get("DSWIFT_DEBUG") else logging.INFO
    _LOG.setLevel(level)
    if not _LOG.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        _LOG.addHandler(h)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dswift",
        description="Dynamic Swift: генерация исходников Swift из шаблонов .dswift",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--verbose", action="store_true", help="подробный лог (DEBUG)")
    p.add_argument(
        "--project",
        type=Path,
        default=None,
        help="корень проекта с dswift.yaml (по умолчанию текущий каталог)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_gen = sub.add_parser("generate", help="Сгенерировать .swift рядом с каждым .dswift / .dswift-static (JSON-отчёт)")
    sp_gen.add_argument("paths", nargs="+", type=Path, help="исходные файлы или каталоги (рекурсивно)")
    sp_gen.add_argument("--force", action="store_true", help="генерировать даже актуальные файлы")
    sp_gen.add_argument("--lock", action="store_true", default=None, help="пометить результат только для чтения")

    sp_check = sub.add_parser("check", help="Какие файлы требуют повторной генерации (JSON)")
    sp_check.add_argument("paths", nargs="+", type=Path)

    sp_source = sub.add_parser("source", help="Текст программы-генератора для шаблона (без сборки)")
    sp_source.add_argument("file", type=Path)
    sp_source.add_argument("--class-name", default=None, help="имя класса генератора")

    sp_clean = sub.add_parser("clean", help="Удалить сгенерированные файлы (JSON)")
    sp_clean.add_argument("paths", nargs="+", type=Path)

    return p


def _collect_sources(generators: GroupGenerator, paths: Iterable[Path]) -> List[Path]:
    result: List[Path] = []
    for p in paths:
        if p.is_dir():
            result.extend(generators.collect_sources(p))
        elif p.is_file():
            result.append(p)
        else:
            raise ValueError(f"Path not found: {p}")
    return result


def _report(cmd: str) -> Report:
    return Report(command=cmd, toolVersion=tool_version(), engineVersion=str(ENGINE_TOOLS_VERSION))


def _entry(src: Path, status: FileStatus, error: Optional[str] = None) -> FileEntry:
    return FileEntry(source=str(src), destination=str(generated_path_for(src)), status=status, error=error)


def _run_generate(ns: argparse.Namespace, project: SwiftProject) -> Report:
    generators = GroupGenerator(project)
    report = _report("generate")
    for src in _collect_sources(generators, ns.paths):
        try:
            if not ns.force and not generators.requires_generation(src):
                report.files.append(_entry(src, FileStatus.up_to_date))
                continue
            written = generators.write_generated(src, lock=ns.lock)
            report.files.append(_entry(src, FileStatus.written if written else FileStatus.unchanged))
        except DSwiftUserError as e:
            _LOG.error(str(e))
            report.files.append(_entry(src, FileStatus.failed, str(e)))
    return report


def _run_check(ns: argparse.Namespace, project: SwiftProject) -> Report:
    generators = GroupGenerator(project)
    report = _report("check")
    for src in _collect_sources(generators, ns.paths):
        try:
            outdated = generators.requires_generation(src)
            report.files.append(_entry(src, FileStatus.outdated if outdated else FileStatus.up_to_date))
        except DSwiftUserError as e:
            report.files.append(_entry(src, FileStatus.failed, str(e)))
    return report


def _run_clean(ns: argparse.Namespace, project: SwiftProject) -> Report:
    generators = GroupGenerator(project)
    report = _report("clean")
    for p in ns.paths:
        if p.is_file():
            p = p.parent
        for src, dest in generators.clean(p):
            report.files.append(FileEntry(source=str(src), destination=str(dest), status=FileStatus.removed))
    return report


def _dump(report: Report) -> None:
    sys.stdout.write(json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2) + "\n")


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(ns.verbose)

    try:
        project = load_project(ns.project or Path.cwd())

        if ns.cmd == "source":
            generators = GroupGenerator(project)
            if generators.generator_for(ns.file) is not generators.dynamic:
                raise ValueError(f"'source' applies to .dswift templates only: {ns.file}")
            sys.stdout.write(generators.dynamic.generator_source(ns.file, ns.class_name))
            return 0

        if ns.cmd == "generate":
            report = _run_generate(ns, project)
            _dump(report)
            return 2 if report.failed else 0

        if ns.cmd == "check":
            report = _run_check(ns, project)
            _dump(report)
            return 2 if report.failed else 0

        if ns.cmd == "clean":
            _dump(_run_clean(ns, project))
            return 0

    except DSwiftUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except ValueError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
