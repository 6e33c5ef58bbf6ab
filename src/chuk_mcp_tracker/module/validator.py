"""
Module Validator - checks a module tree against its configuration.

Validates:
- The root is a single GLOBAL group instance
- Every node is declared as a child of its parent group
- Instances have the kind their node declares, with unique ids
- Block rows have one cell per column
- Field values fit their source command
- Order lists reference existing pattern instances
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from functools import partialmethod
from typing import Any

from chuk_mcp_tracker.constants import ROOT_NODE_ID, CommandType, NodeKind
from chuk_mcp_tracker.models.config import ModuleConfig
from chuk_mcp_tracker.models.node import (
    EMPTY,
    BlockInstance,
    FieldInstance,
    GroupInstance,
    Instance,
    Node,
)
from chuk_mcp_tracker.module.document import Module

_KIND_TYPES: dict[NodeKind, type] = {
    NodeKind.FIELD: FieldInstance,
    NodeKind.BLOCK: BlockInstance,
    NodeKind.GROUP: GroupInstance,
}


class ValidationSeverity(str, Enum):
    """How much a validation issue matters to compilation."""

    ERROR = "error"  # The compiler would reject or misread the module
    WARNING = "warning"  # Compiles, but playback differs from the layout
    INFO = "info"


@dataclass(frozen=True)
class ValidationIssue:
    """One finding, located by instance path (plus a row index for cells)."""

    severity: ValidationSeverity
    code: str
    message: str
    location: str | None = None

    def __str__(self) -> str:
        where = f" at {self.location}" if self.location else ""
        return f"[{self.severity.value.upper()}] {self.code}: {self.message}{where}"

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "severity": self.severity.value}


@dataclass
class ValidationResult:
    """Issues found in one module tree, in the order the walk met them."""

    issues: list[ValidationIssue] = field(default_factory=list)

    def add(
        self,
        severity: ValidationSeverity,
        code: str,
        message: str,
        location: str | None = None,
    ) -> None:
        self.issues.append(ValidationIssue(severity, code, message, location))

    add_error = partialmethod(add, ValidationSeverity.ERROR)
    add_warning = partialmethod(add, ValidationSeverity.WARNING)
    add_info = partialmethod(add, ValidationSeverity.INFO)

    def by_severity(self, severity: ValidationSeverity) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == severity]

    @property
    def errors(self) -> list[ValidationIssue]:
        return self.by_severity(ValidationSeverity.ERROR)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return self.by_severity(ValidationSeverity.WARNING)

    @property
    def is_valid(self) -> bool:
        """A module with warnings or info only still compiles."""
        return not self.errors

    def codes(self) -> list[str]:
        return [i.code for i in self.issues]

    def __bool__(self) -> bool:
        return self.is_valid

    def __str__(self) -> str:
        if not self.issues:
            return "Validation passed: no issues found"
        header = f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        return "\n".join([header, *(str(issue) for issue in self.issues)])


class ModuleValidator:
    """Validates a module tree against its configuration."""

    def validate(self, module: Module) -> ValidationResult:
        """
        Validate a module.

        Args:
            module: The module to validate

        Returns:
            ValidationResult with any issues found
        """
        return self.validate_tree(module.tree, module.config)

    def validate_tree(self, tree: Node, config: ModuleConfig) -> ValidationResult:
        """Validate a bare tree against a configuration."""
        result = ValidationResult()

        if tree.node_id != ROOT_NODE_ID:
            result.add_error("INVALID_ROOT", f"Root node is {tree.node_id}, not {ROOT_NODE_ID}")
            return result
        root = tree.get_instance(0)
        if len(tree.instances) != 1 or not isinstance(root, GroupInstance):
            result.add_error(
                "INVALID_ROOT", f"{ROOT_NODE_ID} must have exactly one group instance with id 0"
            )
            return result

        self._validate_group(config, ROOT_NODE_ID, root, f"{ROOT_NODE_ID}/0/", result)
        return result

    def _validate_group(
        self,
        config: ModuleConfig,
        group_id: str,
        group: GroupInstance,
        location: str,
        result: ValidationResult,
    ) -> None:
        declared = config.child_ids(group_id)
        present = group.node_ids()

        for node in group.nodes:
            if node.node_id not in declared:
                result.add_error(
                    "UNKNOWN_NODE",
                    f"{node.node_id} is not a child of {group_id}",
                    location,
                )
                continue
            self._validate_node(config, node, location, result)

        for child in declared:
            if child not in present:
                result.add_info("MISSING_NODE", f"{child} has no instances", location)

        self._validate_order(config, group_id, group, location, result)

    def _validate_node(
        self, config: ModuleConfig, node: Node, location: str, result: ValidationResult
    ) -> None:
        kind = config.node_type(node.node_id)
        ids = [instance.id for instance in node.instances]

        seen: set[int] = set()
        for instance_id in ids:
            if instance_id in seen:
                result.add_error(
                    "DUPLICATE_INSTANCE",
                    f"Instance id {instance_id} of {node.node_id} is used more than once",
                    f"{location}{node.node_id}",
                )
            seen.add(instance_id)
        if ids != sorted(ids):
            result.add_warning(
                "INSTANCE_ORDER",
                f"Instances of {node.node_id} are not in id order",
                f"{location}{node.node_id}",
            )

        for instance in node.instances:
            here = f"{location}{node.node_id}/{instance.id}/"
            if not isinstance(instance, _KIND_TYPES[kind]):
                result.add_error(
                    "KIND_MISMATCH",
                    f"{node.node_id} is a {kind.value} but holds {type(instance).__name__}",
                    here,
                )
                continue
            self._validate_instance(config, node.node_id, instance, here, result)

    def _validate_instance(
        self,
        config: ModuleConfig,
        node_id: str,
        instance: Instance,
        location: str,
        result: ValidationResult,
    ) -> None:
        if isinstance(instance, FieldInstance):
            self._validate_value(config, node_id, instance.value, location, result)
        elif isinstance(instance, BlockInstance):
            columns = config.child_ids(node_id)
            for index, row in enumerate(instance.rows):
                if len(row) != len(columns):
                    result.add_error(
                        "ROW_WIDTH",
                        f"Row {index} of {node_id} has {len(row)} cells, expected {len(columns)}",
                        location,
                    )
                    continue
                for column, value in zip(columns, row, strict=True):
                    self._validate_value(config, column, value, f"{location}{index}", result)
        elif isinstance(instance, GroupInstance):
            self._validate_group(config, node_id, instance, location, result)

    def _validate_value(
        self,
        config: ModuleConfig,
        field_id: str,
        value: Any,
        location: str,
        result: ValidationResult,
    ) -> None:
        if value is EMPTY:
            return
        try:
            command = config.source_command(field_id)
        except KeyError as e:
            result.add_error("NO_COMMAND", str(e), location)
            return

        if command.command_type in (CommandType.STRING, CommandType.LABEL):
            return
        if command.command_type == CommandType.TRIGGER:
            return
        if command.command_type in (CommandType.KEY, CommandType.UKEY) and isinstance(value, str):
            if command.keys is None or value not in command.keys:
                result.add_error(
                    "INVALID_VALUE", f"{field_id}: unknown key {value!r}", location
                )
            return
        if not isinstance(value, int) or isinstance(value, bool):
            result.add_error(
                "INVALID_VALUE", f"{field_id}: expected an integer, got {value!r}", location
            )
            return

        if command.command_type == CommandType.INT:
            low, high = -(1 << (command.bits - 1)), (1 << (command.bits - 1)) - 1
        else:
            low, high = 0, (1 << command.bits) - 1
        if not low <= value <= high:
            result.add_error(
                "VALUE_RANGE",
                f"{field_id}: {value} does not fit in {command.bits} bits",
                location,
            )

    def _validate_order(
        self,
        config: ModuleConfig,
        group_id: str,
        group: GroupInstance,
        location: str,
        result: ValidationResult,
    ) -> None:
        blocks = config.group_blocks(group_id)
        if not blocks:
            return
        order_id = config.order_id(group_id)
        order_node = group.get_node(order_id)
        order = order_node.get_instance(0) if order_node is not None else None
        if not isinstance(order, BlockInstance):
            result.add_error("NO_ORDER", f"{group_id} has no order list", location)
            return
        if order.row_count == 0:
            result.add_warning("EMPTY_ORDER", f"Order list of {group_id} is empty", location)
            return

        for position, entry in enumerate(order.rows):
            here = f"{location}{order_id}/0/{position}"
            if len(entry) != len(blocks) + 1:
                # Already reported as ROW_WIDTH
                continue
            repeat = entry[0]
            for block_id, ref in zip(blocks, entry[1:], strict=True):
                if ref is EMPTY:
                    continue
                node = group.get_node(block_id)
                instance = node.get_instance(ref) if node is not None else None
                if not isinstance(instance, BlockInstance):
                    result.add_error(
                        "MISSING_PATTERN",
                        f"Order position {position} references missing {block_id} {ref}",
                        here,
                    )
                elif isinstance(repeat, int) and repeat > instance.row_count:
                    result.add_warning(
                        "SHORT_PATTERN",
                        f"Order position {position} plays {repeat} rows but "
                        f"{block_id} {ref} has {instance.row_count}",
                        here,
                    )


def validate_module(module: Module) -> ValidationResult:
    """Validate a module with the default validator."""
    return ModuleValidator().validate(module)
