"""
Semantic validation of form metadata before compilation.

Checks that parsing cannot express: unique field IDs and names, known
field types, well-formed options, condition references to existing
fields, and an acyclic condition-dependency graph. Every problem is
collected so the form author sees them all at once.
"""

from formcompiler.core.errors import CircularReferenceError, MetadataError, MetadataIssue
from formcompiler.core.schema import FieldType, FormField, FormMetadata
from formcompiler.core.utils import strict_equals

_KNOWN_TYPES = {member.value for member in FieldType}

# DFS colors
_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


def validate_metadata(metadata: FormMetadata) -> list[MetadataIssue]:
    """Return every issue found in the metadata (empty when valid).

    Args:
        metadata: The parsed form metadata.

    Returns:
        The list of issues, in field order, cycles last.
    """
    issues, _ = _collect_issues(metadata)
    return issues


def check_metadata(metadata: FormMetadata) -> None:
    """Raise if the metadata has any issue.

    Raises:
        CircularReferenceError: If the condition graph has a cycle.
        MetadataError: For any other issue.
    """
    issues, cycles = _collect_issues(metadata)
    if cycles:
        raise CircularReferenceError(cycles[0], issues)
    if issues:
        raise MetadataError(issues)


def _collect_issues(metadata: FormMetadata) -> tuple[list[MetadataIssue], list[list[str]]]:
    """Run every check once, returning the issues and the cycles found."""
    issues: list[MetadataIssue] = []

    if not metadata.version or not metadata.version.strip():
        issues.append(MetadataIssue(
            field="version",
            code="INVALID_VERSION",
            message="Version must be a non-empty string",
        ))

    field_ids: set[str] = set()
    field_names: set[str] = set()
    for index, field in enumerate(metadata.fields):
        path = f"fields[{index}]"

        if field.id in field_ids:
            issues.append(MetadataIssue(
                field=f"{path}.id",
                code="DUPLICATE_ID",
                message=f"Duplicate field ID: '{field.id}'",
            ))
        field_ids.add(field.id)

        if field.name in field_names:
            issues.append(MetadataIssue(
                field=f"{path}.name",
                code="DUPLICATE_NAME",
                message=f"Duplicate field name: '{field.name}'",
            ))
        field_names.add(field.name)

        if field.type not in _KNOWN_TYPES:
            issues.append(MetadataIssue(
                field=f"{path}.type",
                code="UNKNOWN_TYPE",
                message=f"Field '{field.id}' has unknown type '{field.type}'",
            ))
        else:
            issues.extend(_check_options(field, path))

    # References are checked against the complete ID set, so a condition may
    # point at a field declared later in the list.
    for index, field in enumerate(metadata.fields):
        for ref in field.referenced_field_ids():
            if ref not in field_ids:
                issues.append(MetadataIssue(
                    field=f"fields[{index}].condition",
                    code="DANGLING_REFERENCE",
                    message=f"Field '{field.id}' has a condition referencing "
                            f"non-existent field '{ref}'",
                ))

    cycles = find_cycles(metadata.fields)
    first_index: dict[str, int] = {}
    for index, field in enumerate(metadata.fields):
        first_index.setdefault(field.id, index)
    for cycle in cycles:
        issues.append(MetadataIssue(
            field=f"fields[{first_index[cycle[0]]}].condition",
            code="CIRCULAR_REFERENCE",
            message=f"Circular condition reference: {' -> '.join(cycle)}",
        ))

    return issues, cycles


def find_cycles(fields: list[FormField]) -> list[list[str]]:
    """Find cycles in the condition-dependency graph.

    An edge X -> Y means X's condition references Y. Uses depth-first search
    with three-color marking; reaching an in-progress node closes a cycle.
    Each cycle lists field IDs in traversal order with the closing ID
    repeated at the end, e.g. ``["a", "b", "a"]``.
    """
    graph: dict[str, list[str]] = {}
    for field in fields:
        graph.setdefault(field.id, [])
        for ref in field.referenced_field_ids():
            if ref not in graph[field.id]:
                graph[field.id].append(ref)

    color = {node: _UNVISITED for node in graph}
    cycles: list[list[str]] = []

    for start in graph:
        if color[start] != _UNVISITED:
            continue

        # Iterative DFS: (node, iterator over its neighbours)
        path = [start]
        color[start] = _IN_PROGRESS
        stack = [(start, iter(graph[start]))]
        while stack:
            node, neighbours = stack[-1]
            advanced = False
            for neighbour in neighbours:
                state = color.get(neighbour)
                if state is None:
                    # Dangling reference, reported separately
                    continue
                if state == _IN_PROGRESS:
                    cycles.append(path[path.index(neighbour):] + [neighbour])
                elif state == _UNVISITED:
                    color[neighbour] = _IN_PROGRESS
                    path.append(neighbour)
                    stack.append((neighbour, iter(graph[neighbour])))
                    advanced = True
                    break
            if not advanced:
                color[node] = _DONE
                path.pop()
                stack.pop()

    return cycles


def _check_options(field: FormField, path: str) -> list[MetadataIssue]:
    """Options must be present for selects and unique for every choice field."""
    issues: list[MetadataIssue] = []
    needs_options = field.type in (FieldType.SELECT.value, FieldType.CHECKBOX.value)

    if field.type == FieldType.SELECT.value and not field.options:
        issues.append(MetadataIssue(
            field=f"{path}.options",
            code="MISSING_OPTIONS",
            message=f"Field '{field.id}' of type 'select' must have non-empty 'options'",
        ))
        return issues

    if not needs_options or not field.options:
        return issues

    seen: list = []
    for option in field.options:
        if any(strict_equals(option.value, value) for value in seen):
            issues.append(MetadataIssue(
                field=f"{path}.options",
                code="DUPLICATE_OPTION",
                message=f"Field '{field.id}' has duplicate option value {option.value!r}",
            ))
        else:
            seen.append(option.value)

    return issues
