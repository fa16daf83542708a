"""SQL statements wrapping Cypher queries for Apache AGE.

AGE executes Cypher through the ``cypher()`` set-returning function:

    SELECT * FROM cypher($1, $tag$ <cypher> $tag$, $2) AS (r agtype)

The graph name and the Cypher parameter map are always bound parameters.
Values supplied by callers never become part of the statement text.
"""

from __future__ import annotations

import json
import secrets
import string
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from graph.infrastructure.exceptions import InsecureQueryError
from shared_kernel.exceptions import InvalidRequest

NONCE_LENGTH = 64

# Name of the single agtype column every statement returns.
RESULT_COLUMN = "r"


@dataclass(frozen=True)
class CypherStatement:
    """A statement ready to be submitted with positional arguments."""

    sql: str
    args: tuple[Any, ...]


def generate_nonce() -> str:
    return "".join(secrets.choice(string.ascii_letters) for _ in range(NONCE_LENGTH))


def parameter_name(position: int) -> str:
    """Name under which the positional parameter is visible to Cypher.

    Positions are 1-based, so the first bound value is ``$p1``.
    """
    return f"p{position}"


def build_parameter_map(params: Sequence[Any]) -> str:
    """Encode positional parameters as the agtype map AGE expects.

    Raises:
        InvalidRequest: If a value is not JSON-serializable.
    """
    mapping = {parameter_name(i): value for i, value in enumerate(params, start=1)}
    try:
        return json.dumps(mapping)
    except (TypeError, ValueError) as e:
        raise InvalidRequest(f"Query parameters must be JSON values: {e}") from e


def build_cypher_statement(
    graph: str,
    query: str,
    params: Sequence[Any] = (),
    nonce_generator: Callable[[], str] | None = None,
) -> CypherStatement:
    """Build the SQL statement for executing a Cypher query via AGE.

    The Cypher body is enclosed in a dollar-quote tag unique to this
    statement rather than the default ``$$``. If the generated tag occurs in
    the query an InsecureQueryError is raised, since the query could
    otherwise terminate the quoting early.

    Args:
        graph: Graph name, bound as the first parameter.
        query: Cypher statement returning a single column.
        params: Positional values, bound together as the second parameter.
        nonce_generator: Optional source of the random tag body.

    Returns:
        CypherStatement with the SQL text and its positional arguments.
    """
    nonce = (nonce_generator or generate_nonce)()

    if nonce in query:
        raise InsecureQueryError(
            message="Unique nonce detected in cypher query.", query=query
        )

    tag = f"${nonce}$"

    if params:
        sql = (
            f"SELECT * FROM cypher($1, {tag} {query} {tag}, $2) "
            f"AS ({RESULT_COLUMN} agtype)"
        )
        return CypherStatement(sql=sql, args=(graph, build_parameter_map(params)))

    sql = f"SELECT * FROM cypher($1, {tag} {query} {tag}) AS ({RESULT_COLUMN} agtype)"
    return CypherStatement(sql=sql, args=(graph,))
