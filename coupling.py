#!/usr/bin/env python3
"""
Git Coupling Detector

Mines a bounded window of commit history and measures file coupling:
how often pairs of files change together. The result is a weighted,
directed co-change graph exported as three CSV datasets:

- node_list.csv         one row per distinct file
- edge_list.csv         one row per observed (from, to) pair
- adjacency_matrix.csv  square matrix of accumulated weights

Version: 1.0.0
"""

import csv
import io
import json
import os
import re
import subprocess
import sys
import time
import cProfile
import pstats
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Any

import click
import psutil
import yaml
from colorama import Fore, Style, init as colorama_init
from tqdm import tqdm

colorama_init(autoreset=True)


VERSION = "1.0.0"

DEFAULT_MAX_COMMITS = 1_000
DEFAULT_REJECTED_PATTERN = (
    r"(assets|design-system|views|db/|\.yml|spec|config/|gitignore|Gemfile)"
)
MEMORY_CHECK_INTERVAL = 100

NODE_LIST_FILE = "node_list.csv"
EDGE_LIST_FILE = "edge_list.csv"
ADJACENCY_MATRIX_FILE = "adjacency_matrix.csv"


# ============================================================================
# PROFILING & RESOURCES
# ============================================================================


class MemoryMonitor:
    """Monitor memory usage and enforce limits"""

    def __init__(self, limit_mb: Optional[float] = None):
        self.limit_mb = limit_mb
        self.peak_mb = 0.0

    def check_memory(self) -> float:
        """Get current memory usage in MB"""
        process = psutil.Process(os.getpid())
        memory_mb = process.memory_info().rss / 1024 / 1024
        self.peak_mb = max(self.peak_mb, memory_mb)

        if self.limit_mb and memory_mb > self.limit_mb:
            raise MemoryError(
                f"Memory limit exceeded: {memory_mb:.1f}MB > {self.limit_mb}MB"
            )

        return memory_mb

    def get_peak(self) -> float:
        """Get peak memory usage"""
        return self.peak_mb


class ProfilingContext:
    """Context manager for CPU profiling of a single stage"""

    def __init__(
        self,
        enabled: bool = False,
        output_path: Optional[str] = None,
        quiet: bool = False,
    ):
        self.enabled = enabled
        self.output_path = output_path
        self.quiet = quiet
        self.profiler = None

    def __enter__(self):
        if self.enabled:
            self.profiler = cProfile.Profile()
            self.profiler.enable()
        return self

    def __exit__(self, *args):
        if self.enabled and self.profiler:
            self.profiler.disable()

            if self.output_path:
                self.profiler.dump_stats(self.output_path)

            if self.quiet:
                return

            s = io.StringIO()
            ps = pstats.Stats(self.profiler, stream=s)
            ps.strip_dirs()
            ps.sort_stats("cumulative")
            ps.print_stats(20)
            print(f"\n{'='*70}")
            print("PERFORMANCE PROFILE (Top 20 functions by cumulative time)")
            print(f"{'='*70}")
            print(s.getvalue())


# ============================================================================
# CONFIGURATION
# ============================================================================


def load_config_file(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.
    Supports .git-coupling.yaml, .git-coupling.yml and .git-coupling.json
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    file_ext = os.path.splitext(config_path)[1].lower()

    with open(config_path, "r", encoding="utf-8") as f:
        if file_ext in [".yaml", ".yml"]:
            return yaml.safe_load(f) or {}
        elif file_ext == ".json":
            return json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {file_ext}")


def find_config_file(repo_path: str) -> Optional[str]:
    """
    Auto-discover configuration file in repository or current directory.
    """
    search_paths = [
        repo_path,
        os.getcwd(),
    ]

    config_names = [
        ".git-coupling.yaml",
        ".git-coupling.yml",
        ".git-coupling.json",
    ]

    for search_dir in search_paths:
        for config_name in config_names:
            config_path = os.path.join(search_dir, config_name)
            if os.path.exists(config_path):
                return config_path

    return None


class ConfigResolver:
    """
    Resolve configuration with precedence: CLI > Config File > Defaults
    """

    DEFAULTS = {
        "max_commits": DEFAULT_MAX_COMMITS,
        "rejected_pattern": DEFAULT_REJECTED_PATTERN,
        "output": ".",
        "profile": False,
        "profile_output": "building-graph.prof",
        "quiet": False,
        "verbose": False,
        "no_color": False,
        "dry_run": False,
    }

    def __init__(
        self,
        cli_args: Dict[str, Any],
        config_path: Optional[str],
        repo_path: str,
    ):
        self.cli = {k: v for k, v in cli_args.items() if v is not None}
        self.config = {}
        self.config_source = None
        self.warnings: List[str] = []

        if config_path:
            self.config = load_config_file(config_path)
            self.config_source = config_path
        else:
            auto_path = find_config_file(repo_path)
            if auto_path:
                try:
                    self.config = load_config_file(auto_path)
                    self.config_source = auto_path
                except (OSError, ValueError, yaml.YAMLError) as e:
                    self.warnings.append(
                        f"Found config file but failed to load: {e}"
                    )

        if not isinstance(self.config, dict):
            raise ValueError(
                f"Configuration must be a mapping, got {type(self.config).__name__}"
            )
        bad_keys = [k for k in self.config if not isinstance(k, str)]
        if bad_keys:
            raise ValueError(f"Configuration keys must be strings, got {bad_keys!r}")

        # Normalize config keys (kebab-case to snake_case)
        self.config = {k.replace("-", "_"): v for k, v in self.config.items()}

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve value based on precedence"""
        if key in self.cli:
            return self.cli[key]
        if key in self.config:
            return self.config[key]
        if key in self.DEFAULTS:
            return self.DEFAULTS[key]
        return default


# ============================================================================
# PROGRESS REPORTING
# ============================================================================


class ProgressReporter:
    """
    Console reporting for each stage of a run.
    - Color-coded output (colorama)
    - Progress bars with ETA (tqdm)
    - Per-stage and total elapsed time
    """

    def __init__(
        self, quiet: bool = False, verbose: bool = False, use_colors: bool = True
    ):
        self.quiet = quiet
        self.verbose = verbose
        self.use_colors = use_colors
        self.start_time = time.time()
        self.stage_times = {}

    def _colorize(self, text: str, color: str) -> str:
        """Apply color if enabled"""
        if self.use_colors:
            return f"{color}{text}{Style.RESET_ALL}"
        return text

    def stage_start(self, stage_name: str, message: str = ""):
        """Mark the start of a processing stage"""
        self.stage_times[stage_name] = time.time()
        if self.quiet:
            return

        stage_text = self._colorize(f"🔄 {stage_name}", Fore.BLUE + Style.BRIGHT)
        print(stage_text)
        if message:
            print(f"   {message}")

    def stage_complete(self, stage_name: str) -> float:
        """Mark completion of a processing stage and return its duration"""
        elapsed = time.time() - self.stage_times.get(stage_name, time.time())
        if self.quiet:
            return elapsed

        complete_text = self._colorize(
            f"✅ {stage_name} finished. Took {elapsed:.2f} seconds",
            Fore.GREEN + Style.BRIGHT,
        )
        print(complete_text)
        return elapsed

    @contextmanager
    def timed(self, stage_name: str, message: str = ""):
        """Wrap a block between stage_start and stage_complete"""
        self.stage_start(stage_name, message)
        yield
        self.stage_complete(stage_name)

    def create_progress_bar(
        self, total: int, desc: str = "Processing"
    ) -> Optional[tqdm]:
        """Create a progress bar with ETA"""
        if self.quiet:
            return None

        return tqdm(
            total=total,
            desc=self._colorize(desc, Fore.CYAN),
            unit=" transitions",
            ncols=100,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]",
        )

    def info(self, message: str):
        """Display informational message"""
        if not self.quiet:
            info_text = self._colorize("ℹ️  ", Fore.BLUE)
            print(f"{info_text}{message}")

    def warning(self, message: str):
        """Display warning message"""
        if not self.quiet:
            warning_text = self._colorize("⚠️  ", Fore.YELLOW + Style.BRIGHT)
            print(f"{warning_text}{message}")

    def error(self, message: str):
        """Display error message (always shown)"""
        error_text = self._colorize(f"❌ ERROR: {message}", Fore.RED + Style.BRIGHT)
        print(error_text, file=sys.stderr)

    def success(self, message: str):
        """Display success message"""
        if not self.quiet:
            success_text = self._colorize(f"✨ {message}", Fore.GREEN + Style.BRIGHT)
            print(success_text)

    def summary(self, stats: Dict[str, Any]):
        """Display final summary"""
        if self.quiet:
            return
        elapsed = time.time() - self.start_time

        separator = self._colorize("=" * 70, Fore.CYAN)
        header = self._colorize("📊 COUPLING SUMMARY", Fore.MAGENTA + Style.BRIGHT)

        print(f"\n{separator}")
        print(header)
        print(separator)
        for key, value in stats.items():
            print(f"   {key}: {value}")

        time_text = self._colorize(f"⏱️  Took {elapsed:.2f} seconds", Fore.YELLOW)
        print(f"\n{time_text}")
        print(f"{separator}\n")


# ============================================================================
# COUPLING GRAPH
# ============================================================================


class FileNode:
    """
    Accumulator of outgoing co-change edges for one file.

    ``edges`` maps a target path to the number of times this file was
    paired with it. Absent targets have weight zero: read them through
    ``weight_to`` rather than indexing the mapping.
    """

    def __init__(self, path: str, graph: Optional["CouplingGraph"] = None):
        self.path = path
        self.graph = graph
        self.edges: Dict[str, int] = {}

    def add_edge(self, target: str):
        self.edges[target] = self.edges.get(target, 0) + 1

    def weight_to(self, target: str) -> int:
        """Accumulated weight toward ``target``, zero if never recorded"""
        return self.edges.get(target, 0)

    def belongs_to(self, graph: "CouplingGraph") -> bool:
        return self.graph is graph

    def to_edge_list(self) -> List[Tuple[str, str]]:
        return [(self.path, target) for target in self.edges]

    def __repr__(self) -> str:
        return f"FileNode({self.path!r}, edges={len(self.edges)})"


class CouplingGraph:
    """
    Ordered, deduplicated collection of FileNodes.

    Nodes keep insertion order until ``sort`` is called, after which
    they are ordered by path. Edge targets need not be nodes themselves:
    a file may be recorded as a target before (or without) ever being
    inserted as a source.
    """

    def __init__(self):
        self._nodes: List[FileNode] = []
        self._index: Dict[str, FileNode] = {}

    def add(self, path: str, targets: Iterable[str]) -> FileNode:
        """
        Locate or create the node for ``path`` and increment its weight
        toward every entry of ``targets``. Repeated targets compound.
        """
        node = self._index.get(path)
        if node is None:
            node = FileNode(path)

        for target in targets:
            node.add_edge(target)

        if not node.belongs_to(self):
            node.graph = self
            self._nodes.append(node)
            self._index[path] = node
        return node

    def sort(self):
        """Reorder nodes by path ascending. Weights are untouched."""
        self._nodes.sort(key=lambda node: node.path)

    def get(self, path: str) -> Optional[FileNode]:
        return self._index.get(path)

    def weight(self, source: str, target: str) -> int:
        """Weight from ``source`` to ``target``; zero if either is unknown"""
        node = self._index.get(source)
        if node is None:
            return 0
        return node.weight_to(target)

    def edge_count(self) -> int:
        return sum(len(node.edges) for node in self._nodes)

    def __iter__(self) -> Iterator[FileNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: str) -> bool:
        return path in self._index

    # Projections

    def to_node_list(self) -> List[str]:
        return [node.path for node in self._nodes]

    def to_edge_list(self) -> List[Tuple[str, str]]:
        """(source, target) pairs, grouped by node in graph order"""
        edges = []
        for node in self._nodes:
            edges.extend(node.to_edge_list())
        return edges

    def to_adjacency_matrix(self) -> List[List[Any]]:
        """
        Header row of node paths followed by one row per node. Row and
        column order both follow the node list.
        """
        files = self.to_node_list()
        table: List[List[Any]] = [list(files)]
        for node in self._nodes:
            table.append([node.weight_to(file) for file in files])
        return table


def derive_edges(paths: List[str]) -> Iterator[Tuple[str, List[str]]]:
    """
    Pair each changed file with every file listed at or after it.

    For index i the targets are ``paths[i:]`` with every occurrence of
    ``paths[i]`` removed. Only self-occurrences are dropped; duplicates
    of other files stay and compound. Edges point from earlier to later
    entries, so the listing order of the diff decides direction.
    """
    for index, path in enumerate(paths):
        targets = [other for other in paths[index:] if other != path]
        yield path, targets


def fold_changeset(graph: CouplingGraph, paths: List[str]):
    """Insert every (source, targets) pair of one change set into graph"""
    for path, targets in derive_edges(paths):
        graph.add(path, targets)


# ============================================================================
# CHANGE SETS
# ============================================================================


class PathFilter:
    """Reject paths matching a pattern of non-source artifacts"""

    def __init__(self, pattern: str = DEFAULT_REJECTED_PATTERN):
        try:
            self.pattern = re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid rejected path pattern {pattern!r}: {e}")

    def accepts(self, path: str) -> bool:
        return self.pattern.search(path) is None


@dataclass(frozen=True)
class Delta:
    """A single file-level change record within a diff"""

    status: str
    old_path: Optional[str]
    new_path: Optional[str]


class ChangeSetExtractor:
    """Turn a diff into the ordered list of accepted changed paths"""

    def __init__(self, path_filter: Optional[PathFilter] = None):
        self.path_filter = path_filter or PathFilter()
        self.rejected = 0

    def extract(self, deltas: Iterable[Delta]) -> List[str]:
        paths = []
        for delta in deltas:
            if delta.new_path is None:
                continue
            if not self.path_filter.accepts(delta.new_path):
                self.rejected += 1
                continue
            paths.append(delta.new_path)
        return paths


# ============================================================================
# HISTORY
# ============================================================================


def parse_name_status(output: str) -> List[Delta]:
    """
    Parse ``git diff --name-status -z`` output into Delta records.

    Records are NUL separated: a status letter followed by one path, or
    by source and destination paths for renames and copies.
    """
    tokens = output.split("\x00")
    if tokens and tokens[-1] == "":
        tokens.pop()

    deltas = []
    i = 0
    while i < len(tokens):
        status = tokens[i]
        kind = status[:1]
        if kind in ("R", "C"):
            if i + 2 >= len(tokens):
                raise ValueError(f"Truncated {status} record in diff output")
            deltas.append(Delta(status, tokens[i + 1], tokens[i + 2]))
            i += 3
            continue

        if i + 1 >= len(tokens):
            raise ValueError(f"Truncated {status} record in diff output")
        path = tokens[i + 1]
        if kind == "D":
            deltas.append(Delta(status, path, None))
        elif kind == "A":
            deltas.append(Delta(status, None, path))
        else:
            deltas.append(Delta(status, path, path))
        i += 2
    return deltas


class GitHistory:
    """Read-only access to a checkout's history through the git CLI"""

    def __init__(self, repo_path: str):
        self.repo_path = os.path.abspath(repo_path)

    @classmethod
    def discover(cls, start_dir: str) -> "GitHistory":
        """Locate the checkout enclosing ``start_dir``, walking upward"""
        if not os.path.isdir(start_dir):
            raise RuntimeError(f"Not a git repository: {start_dir}")
        result = subprocess.run(
            ["git", "-C", start_dir, "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise RuntimeError(f"Not a git repository: {start_dir}")
        return cls(result.stdout.strip())

    def _git(self, *args: str) -> str:
        cmd = ["git", "-C", self.repo_path] + list(args)
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="surrogateescape",
        )
        if result.returncode != 0:
            raise RuntimeError(f"Git command failed: {result.stderr.strip()}")
        return result.stdout

    def walk(self, max_count: int = DEFAULT_MAX_COMMITS) -> List[str]:
        """Commit ids reachable from HEAD, newest first, at most max_count"""
        if max_count <= 0:
            return []
        output = self._git("rev-list", f"--max-count={max_count}", "HEAD")
        return [line for line in output.splitlines() if line]

    def transitions(
        self, max_count: int = DEFAULT_MAX_COMMITS
    ) -> Iterator[Tuple[str, str]]:
        """Consecutive (commit, predecessor) pairs of the bounded walk"""
        window = self.walk(max_count)
        return zip(window, window[1:])

    def diff(self, commit: str, parent: str) -> List[Delta]:
        """
        Changes between ``parent`` and ``commit``. ``new_path`` is the
        path on the ``commit`` side, so files deleted by the commit have
        none.

        Uses the diff-tree plumbing command so that porcelain settings
        such as ``diff.orderFile`` cannot reorder the deltas.
        """
        output = self._git(
            "diff-tree",
            "-r",
            "--no-commit-id",
            "--name-status",
            "-z",
            "--no-renames",
            parent,
            commit,
        )
        return parse_name_status(output)


# ============================================================================
# ANALYZER
# ============================================================================


@dataclass
class RunMetrics:
    """Counters collected while building the graph"""

    transitions_processed: int = 0
    paths_seen: int = 0
    paths_rejected: int = 0
    files_tracked: int = 0
    edges_tracked: int = 0
    total_time: float = 0.0
    memory_peak_mb: float = 0.0


class CouplingAnalyzer:
    """
    Drives one run: walks the history window, extracts each change set
    and folds it into the single CouplingGraph owned by this analyzer.
    """

    def __init__(
        self,
        history: GitHistory,
        path_filter: Optional[PathFilter] = None,
        reporter: Optional[ProgressReporter] = None,
        memory_limit_mb: Optional[float] = None,
    ):
        self.history = history
        self.reporter = reporter or ProgressReporter(quiet=True)
        self.extractor = ChangeSetExtractor(path_filter)
        self.graph = CouplingGraph()
        self.metrics = RunMetrics()
        self.memory_monitor = MemoryMonitor(limit_mb=memory_limit_mb)

    def process_changeset(self, paths: List[str]):
        fold_changeset(self.graph, paths)
        self.metrics.paths_seen += len(paths)

    def build_graph(self, max_commits: int = DEFAULT_MAX_COMMITS) -> CouplingGraph:
        start_time = time.time()
        transitions = list(self.history.transitions(max_commits))

        progress_bar = self.reporter.create_progress_bar(
            total=len(transitions), desc="Building graph"
        )
        try:
            for commit, parent in transitions:
                deltas = self.history.diff(commit, parent)
                self.process_changeset(self.extractor.extract(deltas))
                self.metrics.transitions_processed += 1

                if progress_bar:
                    progress_bar.update(1)

                if self.metrics.transitions_processed % MEMORY_CHECK_INTERVAL == 0:
                    memory_mb = self.memory_monitor.check_memory()
                    if self.reporter.verbose:
                        self.reporter.info(f"Memory usage: {memory_mb:.1f} MB")
        finally:
            if progress_bar:
                progress_bar.close()

        self.memory_monitor.check_memory()
        self.metrics.paths_rejected = self.extractor.rejected
        self.metrics.files_tracked = len(self.graph)
        self.metrics.edges_tracked = self.graph.edge_count()
        self.metrics.memory_peak_mb = self.memory_monitor.get_peak()
        self.metrics.total_time += time.time() - start_time
        return self.graph

    def sort_graph(self):
        self.graph.sort()


# ============================================================================
# EXPORT
# ============================================================================


def _write_rows(output_path: str, rows: Iterable[List[Any]]):
    # Undecodable path bytes are carried as surrogates and written back as-is
    with open(
        output_path, "w", newline="", encoding="utf-8", errors="surrogateescape"
    ) as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerows(rows)


def write_node_list(graph: CouplingGraph, output_path: str):
    rows = [["file"]]
    rows.extend([path] for path in graph.to_node_list())
    _write_rows(output_path, rows)


def write_edge_list(graph: CouplingGraph, output_path: str):
    rows = [["from", "to"]]
    rows.extend([source, target] for source, target in graph.to_edge_list())
    _write_rows(output_path, rows)


def write_adjacency_matrix(graph: CouplingGraph, output_path: str):
    _write_rows(output_path, graph.to_adjacency_matrix())


EXPORTERS = [
    ("node_list", "Writing node list", NODE_LIST_FILE, write_node_list),
    ("edge_list", "Writing edge list", EDGE_LIST_FILE, write_edge_list),
    (
        "adjacency_matrix",
        "Writing adjacency matrix",
        ADJACENCY_MATRIX_FILE,
        write_adjacency_matrix,
    ),
]


def export_graph(
    graph: CouplingGraph,
    output_dir: str,
    reporter: Optional[ProgressReporter] = None,
) -> Dict[str, str]:
    """Write all three datasets and return {dataset name: file name}"""
    reporter = reporter or ProgressReporter(quiet=True)
    os.makedirs(output_dir, exist_ok=True)

    datasets = {}
    for name, stage, file_name, writer in EXPORTERS:
        with reporter.timed(stage):
            writer(graph, os.path.join(output_dir, file_name))
        datasets[name] = file_name
    return datasets


# ============================================================================
# CLI INTERFACE
# ============================================================================


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument(
    "repo_path",
    type=click.Path(file_okay=False),
    default=".",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False),
    help="Directory for the CSV datasets (default: current directory)",
)
@click.option(
    "-n", "--max-commits", type=click.IntRange(min=0), help="Commit window size"
)
@click.option("--reject-pattern", "rejected_pattern", help="Regex of paths to ignore")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML or JSON configuration file",
)
@click.option("--profile", is_flag=True, default=None, help="Profile graph building")
@click.option("--profile-output", help="Profile stats file name")
@click.option("--memory-limit", type=float, help="Memory limit in MB")
@click.option("-q", "--quiet", is_flag=True, default=None, help="Suppress output")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=None,
    help="Show detailed progress information",
)
@click.option("--no-color", is_flag=True, default=None, help="Disable colored output")
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Show the resolved settings without running analysis",
)
@click.version_option(version=VERSION)
def main(repo_path, config, **kwargs):
    """
    Measure file coupling from the commit history of REPO_PATH.

    Files changed together in consecutive commits of the walked window
    are linked, and the weighted graph is written as node_list.csv,
    edge_list.csv and adjacency_matrix.csv.
    """
    try:
        resolver = ConfigResolver(kwargs, config, repo_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        ProgressReporter().error(f"Invalid configuration: {e}")
        sys.exit(1)

    quiet = resolver.get("quiet")
    verbose = resolver.get("verbose")
    reporter = ProgressReporter(
        quiet=quiet, verbose=verbose, use_colors=not resolver.get("no_color")
    )

    max_commits = resolver.get("max_commits")
    rejected_pattern = resolver.get("rejected_pattern")
    output_dir = resolver.get("output")
    memory_limit = resolver.get("memory_limit")
    profile = resolver.get("profile")
    profile_path = os.path.join(output_dir, resolver.get("profile_output"))

    for message in resolver.warnings:
        reporter.warning(message)
    if resolver.config_source:
        reporter.info(f"Configuration: {resolver.config_source}")

    if resolver.get("dry_run"):
        reporter.info("DRY RUN MODE - No analysis will be performed")
        reporter.info(f"Repository: {repo_path}")
        reporter.info(f"Commit window: {max_commits}")
        reporter.info(f"Rejected paths: {rejected_pattern}")
        reporter.info(f"Output directory: {output_dir}")
        if memory_limit:
            reporter.info(f"Memory limit: {memory_limit} MB")
        if profile:
            reporter.info(f"Profiling enabled (output: {profile_path})")
        for _, _, file_name, _ in EXPORTERS:
            reporter.info(f"  ✓ {file_name}")
        return

    try:
        max_commits = int(max_commits)
        path_filter = PathFilter(rejected_pattern)
        history = GitHistory.discover(repo_path)
        analyzer = CouplingAnalyzer(
            history,
            path_filter,
            reporter=reporter,
            memory_limit_mb=memory_limit,
        )

        if profile:
            os.makedirs(output_dir, exist_ok=True)

        with ProfilingContext(
            enabled=profile, output_path=profile_path, quiet=quiet
        ):
            with reporter.timed("Building graph", f"Repository: {history.repo_path}"):
                analyzer.build_graph(max_commits)

        with reporter.timed("Sorting graph"):
            analyzer.sort_graph()

        datasets = export_graph(analyzer.graph, output_dir, reporter)

        metrics = analyzer.metrics
        reporter.summary(
            {
                "Repository": history.repo_path,
                "Output directory": os.path.abspath(output_dir),
                "Transitions processed": f"{metrics.transitions_processed:,}",
                "Paths seen": f"{metrics.paths_seen:,}",
                "Paths rejected": f"{metrics.paths_rejected:,}",
                "Files tracked": f"{metrics.files_tracked:,}",
                "Edges tracked": f"{metrics.edges_tracked:,}",
                "Build time": f"{metrics.total_time:.2f}s",
                "Peak memory": f"{metrics.memory_peak_mb:.1f} MB",
                "Datasets generated": len(datasets),
            }
        )
        reporter.success(f"Coupling graph written to: {output_dir}")

    except Exception as e:
        reporter.error(f"Analysis failed: {str(e)}")
        if verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
