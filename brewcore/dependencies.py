# brewcore/dependencies.py
"""
dependencies.py - expansion of a package's dependency/requirement graph

Features:
- Depth-first post-order traversal: every dependency precedes its dependents
- Each name appears once; later paths union their tags into the first node
- A name still on the recursion stack is not re-entered (cycles terminate)
- Requirements are emitted where their owner is visited, before the owner's
  dependency edges, and are never recursed into
- Filter callback per edge: SKIP (drop edge and subtree), KEEP (include but
  do not recurse), EXPAND (include and recurse; the default)
- default_filter() applying optional/recommended pruning from BuildOptions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Union

from brewcore.errors import BrewError, UnresolvedDependencyError
from brewcore.formula import Package
from brewcore.logging import get_logger
from brewcore.options import BuildOptions
from brewcore.specs import Dependency, Requirement

logger = get_logger("dependencies")


class Action(Enum):
    SKIP = "skip"
    KEEP = "keep"
    EXPAND = "expand"


@dataclass(frozen=True)
class ExpansionContext:
    dependent: Package
    depth: int
    build_options: BuildOptions


Edge = Union[Dependency, Requirement]
Resolver = Callable[[str], Package]
Filter = Callable[[Edge, ExpansionContext], Action]


@dataclass
class ResolvedNode:
    """One entry of an expansion: a resolved package or a requirement."""

    name: str
    item: Union[Package, Requirement]
    depth: int
    tags: Set[str] = field(default_factory=set)
    edge: Optional[Edge] = None

    @property
    def is_requirement(self) -> bool:
        return isinstance(self.item, Requirement)

    def __repr__(self):
        kind = "req" if self.is_requirement else "dep"
        return f"ResolvedNode({kind} {self.name!r}, depth={self.depth}, tags={sorted(self.tags)})"


def default_filter(build_options: Optional[BuildOptions] = None) -> Filter:
    """Prune optional edges unless --with-<name>, and recommended ones given --without-<name>."""
    def _filter(edge: Edge, ctx: ExpansionContext) -> Action:
        opts = build_options or ctx.build_options
        if edge.is_optional() and not opts.include(f"with-{edge.name}"):
            return Action.SKIP
        if edge.is_recommended() and opts.include(f"without-{edge.name}"):
            return Action.SKIP
        return Action.EXPAND
    return _filter


class _Expansion:
    def __init__(self, resolver: Resolver, filter_fn: Optional[Filter], build_options: BuildOptions):
        self.resolver = resolver
        self.filter_fn = filter_fn
        self.build_options = build_options
        self.order: List[ResolvedNode] = []
        self.nodes: Dict[str, ResolvedNode] = {}
        self.stack: List[str] = []

    def _decide(self, edge: Edge, owner: Package, depth: int) -> Action:
        if self.filter_fn is None:
            return Action.EXPAND
        action = self.filter_fn(edge, ExpansionContext(owner, depth, self.build_options))
        return Action(action) if not isinstance(action, Action) else action

    def _resolve(self, dep: Dependency, owner: Package) -> Package:
        try:
            pkg = self.resolver(dep.name)
        except UnresolvedDependencyError:
            raise
        except (LookupError, BrewError) as e:
            raise UnresolvedDependencyError(dep.name, owner.name) from e
        if pkg is None:
            raise UnresolvedDependencyError(dep.name, owner.name)
        return pkg

    def visit(self, owner: Package, depth: int) -> None:
        self.stack.append(owner.name)
        try:
            for req in owner.requirements:
                action = self._decide(req, owner, depth + 1)
                if action is Action.SKIP:
                    continue
                key = f"requirement:{req.key}"
                node = self.nodes.get(key)
                if node is not None:
                    node.tags |= req.tags
                    continue
                node = ResolvedNode(req.name, req, depth + 1, set(req.tags), req)
                self.nodes[key] = node
                self.order.append(node)

            for dep in owner.deps:
                action = self._decide(dep, owner, depth + 1)
                if action is Action.SKIP:
                    continue
                key = f"package:{dep.name}"
                node = self.nodes.get(key)
                if node is not None:
                    # seen before or still on the stack: keep first position
                    node.tags |= dep.tags
                    continue
                if dep.name in self.stack:
                    # a cycle back to the root, which is never emitted
                    logger.debug("cycle: %s reached again from %s", dep.name, owner.name)
                    continue
                pkg = self._resolve(dep, owner)
                node = ResolvedNode(dep.name, pkg, depth + 1, set(dep.tags), dep)
                self.nodes[key] = node
                if action is Action.EXPAND:
                    self.visit(pkg, depth + 1)
                self.order.append(node)
        finally:
            self.stack.pop()


def expand(root: Package, resolver: Resolver, filter: Optional[Filter] = None,
           build_options: Optional[BuildOptions] = None) -> List[ResolvedNode]:
    """
    Return root's transitive dependencies and requirements in install order.

    The root itself is not part of the result. Raises
    UnresolvedDependencyError if resolver cannot produce a named package.
    """
    opts = build_options or BuildOptions.create(declared=root.options)
    exp = _Expansion(resolver, filter, opts)
    exp.visit(root, 0)
    logger.debug("expanded %s: %s", root.name, [n.name for n in exp.order])
    return exp.order


def recursive_dependencies(root: Package, resolver: Resolver, filter: Optional[Filter] = None,
                           build_options: Optional[BuildOptions] = None) -> List[ResolvedNode]:
    return [n for n in expand(root, resolver, filter, build_options) if not n.is_requirement]


def recursive_requirements(root: Package, resolver: Resolver, filter: Optional[Filter] = None,
                           build_options: Optional[BuildOptions] = None) -> List[ResolvedNode]:
    return [n for n in expand(root, resolver, filter, build_options) if n.is_requirement]
