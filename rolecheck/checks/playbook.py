"""Helpers for reading tasks and variable definitions out of parsed files."""

from __future__ import annotations

import dataclasses
import re
import typing as typ

from ..nodes import MappingNode, ScalarNode, SequenceNode, walk

if typ.TYPE_CHECKING:
    from ..models import RoleRepository, SourceFile
    from ..nodes import Document, Node

TASK_CATEGORIES = ("tasks", "handlers")
VARIABLE_CATEGORIES = ("defaults", "vars")
BLOCK_KEYS = ("block", "rescue", "always")
MODULE_NAMESPACES = ("ansible.builtin.", "ansible.legacy.")
ACTION_KEYS = frozenset({"action", "local_action"})

TASK_KEYWORDS = frozenset(
    {
        "always",
        "any_errors_fatal",
        "args",
        "async",
        "become",
        "become_exe",
        "become_flags",
        "become_method",
        "become_user",
        "block",
        "changed_when",
        "check_mode",
        "collections",
        "connection",
        "debugger",
        "delay",
        "delegate_facts",
        "delegate_to",
        "diff",
        "environment",
        "failed_when",
        "ignore_errors",
        "ignore_unreachable",
        "listen",
        "loop",
        "loop_control",
        "module_defaults",
        "name",
        "no_log",
        "notify",
        "poll",
        "port",
        "register",
        "remote_user",
        "rescue",
        "retries",
        "run_once",
        "tags",
        "throttle",
        "timeout",
        "until",
        "vars",
        "when",
    }
)

_FREE_FORM_ASSIGNMENT = re.compile(r"(?:^|\s)([A-Za-z_][\w]*)=")


@dataclasses.dataclass(frozen=True)
class TaskModule:
    """Module invoked by a task with the node holding its arguments."""

    name: str
    key: ScalarNode
    arguments: Node | None

    @property
    def short_name(self) -> str:
        """Return the module name without the builtin collection prefix."""
        for namespace in MODULE_NAMESPACES:
            if self.name.startswith(namespace):
                return self.name[len(namespace) :]
        return self.name


@dataclasses.dataclass(frozen=True)
class VariableDefinition:
    """Variable name defined by a vars file, ``set_fact`` or ``register``."""

    name: str
    node: ScalarNode
    origin: str
    source: SourceFile


def iter_tasks(node: Node | None) -> typ.Iterator[MappingNode]:
    """Yield task mappings from a task list, descending into blocks."""
    if not isinstance(node, SequenceNode):
        return
    for item in node.items:
        if not isinstance(item, MappingNode):
            continue
        yield item
        for key in BLOCK_KEYS:
            yield from iter_tasks(item.get(key))


def iter_document_tasks(document: Document) -> typ.Iterator[MappingNode]:
    """Yield every task of every YAML document in a tasks file."""
    for root in document.roots:
        yield from iter_tasks(root)


def task_module(task: MappingNode) -> TaskModule | None:
    """Return the module a task invokes, or None for pure blocks."""
    for key, value in task.pairs:
        if not isinstance(key, ScalarNode):
            continue
        name = key.value
        if name in TASK_KEYWORDS or name.startswith("with_"):
            continue
        if name in ACTION_KEYS:
            return _action_module(key, value)
        return TaskModule(name=name, key=key, arguments=value)
    return None


def _action_module(key: ScalarNode, value: Node) -> TaskModule | None:
    if isinstance(value, ScalarNode):
        words = value.value.split(None, 1)
        if words:
            return TaskModule(name=words[0], key=key, arguments=value)
    if isinstance(value, MappingNode):
        module = value.get("module")
        if isinstance(module, ScalarNode):
            return TaskModule(name=module.value, key=key, arguments=value)
    return None


def argument_names(task: MappingNode, module: TaskModule) -> set[str]:
    """Collect argument names from the module value, free-form text and ``args``."""
    names: set[str] = set()
    for node in (module.arguments, task.get("args")):
        if isinstance(node, MappingNode):
            names.update(node.keys())
        elif isinstance(node, ScalarNode):
            names.update(_FREE_FORM_ASSIGNMENT.findall(node.value))
    return names


def node_text(node: Node | None) -> str:
    """Join every scalar below ``node`` into one searchable string."""
    if node is None:
        return ""
    return "\n".join(
        child.value for child in walk(node) if isinstance(child, ScalarNode)
    )


def top_level_keys(document: Document) -> typ.Iterator[ScalarNode]:
    """Yield the scalar keys of every mapping root in a variables file."""
    for root in document.roots:
        if isinstance(root, MappingNode):
            yield from root.key_nodes()


def file_variables(repository: RoleRepository) -> list[VariableDefinition]:
    """Return variables defined at top level of ``defaults`` and ``vars`` files."""
    definitions: list[VariableDefinition] = []
    for source, document in repository.documents_in(*VARIABLE_CATEGORIES):
        definitions.extend(
            VariableDefinition(
                name=key.value,
                node=key,
                origin=source.category,
                source=source,
            )
            for key in top_level_keys(document)
        )
    return definitions


def task_variables(repository: RoleRepository) -> list[VariableDefinition]:
    """Return variables created by ``set_fact`` and ``register`` in tasks."""
    definitions: list[VariableDefinition] = []
    for source, document in repository.documents_in(*TASK_CATEGORIES):
        for task in iter_document_tasks(document):
            registered = task.get("register")
            if isinstance(registered, ScalarNode) and registered.value:
                definitions.append(
                    VariableDefinition(
                        name=registered.value,
                        node=registered,
                        origin="register",
                        source=source,
                    )
                )
            module = task_module(task)
            if module is None or module.short_name != "set_fact":
                continue
            definitions.extend(_fact_definitions(module, source))
    return definitions


def _fact_definitions(
    module: TaskModule,
    source: SourceFile,
) -> typ.Iterator[VariableDefinition]:
    arguments = module.arguments
    if isinstance(arguments, MappingNode):
        for key in arguments.key_nodes():
            if key.value == "cacheable":
                continue
            yield VariableDefinition(
                name=key.value, node=key, origin="set_fact", source=source
            )
    elif isinstance(arguments, ScalarNode):
        for name in _FREE_FORM_ASSIGNMENT.findall(arguments.value):
            if name == "cacheable":
                continue
            yield VariableDefinition(
                name=name, node=arguments, origin="set_fact", source=source
            )


def documented_variables(repository: RoleRepository) -> set[str]:
    """Return the names declared in ``defaults``, the role's public interface."""
    return {
        key.value
        for _source, document in repository.documents_in("defaults")
        for key in top_level_keys(document)
    }
