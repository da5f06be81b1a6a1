"""
Access control for controller actions.

``Controller.filter_access_control`` builds an ``AccessControlFilter`` from
``access_rules()``. Rules are checked in order and the first rule matching
the request decides. No matching rule means access is granted.

Rule forms:

    def access_rules(self):
        return [
            ("allow", {"actions": ["index", "view"], "users": ["*"]}),
            {"allow": True, "actions": ["edit"], "users": ["@"], "verbs": ["GET", "POST"]},
            AccessRule(allow=True, roles=["admin"]),
            ("deny", {"users": ["*"], "message": "Staff only."}),
        ]

Users: ``*`` anyone, ``?`` guests, ``@`` authenticated identities, any
other value a user name (case-insensitive).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Iterable, List, Mapping, Optional, TYPE_CHECKING

from ..faults import ActionConfigFault, ForbiddenFault
from ..http import client_ip
from .filters import Filter

if TYPE_CHECKING:
    from .filters import FilterChain


def _lower_all(values: Optional[Iterable[str]]) -> List[str]:
    return [str(v).lower() for v in values or []]


def _identity_of(request: Any) -> Any:
    if request is None:
        return None
    identity = getattr(request, "identity", None)
    if identity is None:
        state = getattr(request, "state", None)
        if isinstance(state, Mapping):
            identity = state.get("identity")
    return identity


def _is_guest(identity: Any) -> bool:
    if identity is None:
        return True
    flag = getattr(identity, "is_guest", None)
    return bool(flag) if isinstance(flag, bool) else False


def _identity_name(identity: Any) -> str:
    for attr in ("name", "username", "id"):
        value = getattr(identity, attr, None)
        if value is not None:
            return str(value).lower()
    return ""


def _identity_roles(identity: Any) -> List[str]:
    roles = getattr(identity, "roles", None)
    return _lower_all(roles) if roles else []


@dataclass
class AccessRule:
    """
    A single allow/deny rule.

    Empty lists mean "any": a rule without ``actions`` applies to every
    action, one without ``verbs`` to every method, and so on.
    """

    allow: bool = True
    actions: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    roles: List[str] = field(default_factory=list)
    verbs: List[str] = field(default_factory=list)
    ips: List[str] = field(default_factory=list)
    expression: Optional[Callable[[Any, Any], bool]] = None
    message: Optional[str] = None

    def __post_init__(self):
        self.actions = _lower_all(self.actions)
        self.users = _lower_all(self.users)
        self.roles = _lower_all(self.roles)
        self.verbs = [v.upper() for v in self.verbs or []]
        self.ips = list(self.ips or [])

    @classmethod
    def from_declaration(cls, declaration: Any) -> "AccessRule":
        if isinstance(declaration, AccessRule):
            return declaration

        if isinstance(declaration, (tuple, list)) and declaration:
            verdict, *rest = declaration
            options: dict = {}
            for extra in rest:
                if not isinstance(extra, Mapping):
                    raise ActionConfigFault(
                        f"Access rule options must be mappings, got {type(extra).__name__}.",
                        reason="bad_access_rule",
                    )
                options.update(extra)
            if verdict not in ("allow", "deny"):
                raise ActionConfigFault(
                    f"Access rule must start with 'allow' or 'deny', got {verdict!r}.",
                    reason="bad_access_rule",
                )
            return cls._build({"allow": verdict == "allow", **options})

        if isinstance(declaration, Mapping):
            return cls._build(dict(declaration))

        raise ActionConfigFault(
            f"Unsupported access rule {declaration!r}.",
            reason="bad_access_rule",
        )

    @classmethod
    def _build(cls, options: dict) -> "AccessRule":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ActionConfigFault(
                f"Unknown access rule fields: {', '.join(unknown)}.",
                reason="bad_access_rule",
            )
        return cls(**options)

    def matches(self, action_id: str, request: Any) -> bool:
        identity = _identity_of(request)
        return (
            self._match_action(action_id)
            and self._match_user(identity)
            and self._match_role(identity)
            and self._match_verb(request)
            and self._match_ip(request)
            and self._match_expression(identity, request)
        )

    def _match_action(self, action_id: str) -> bool:
        return not self.actions or action_id.lower() in self.actions

    def _match_user(self, identity: Any) -> bool:
        if not self.users:
            return True
        guest = _is_guest(identity)
        for user in self.users:
            if user == "*":
                return True
            if user == "?" and guest:
                return True
            if user == "@" and not guest:
                return True
            if not guest and user == _identity_name(identity):
                return True
        return False

    def _match_role(self, identity: Any) -> bool:
        if not self.roles:
            return True
        owned = set(_identity_roles(identity))
        return any(role in owned for role in self.roles)

    def _match_verb(self, request: Any) -> bool:
        if not self.verbs:
            return True
        return str(getattr(request, "method", "")).upper() in self.verbs

    def _match_ip(self, request: Any) -> bool:
        if not self.ips:
            return True
        ip = client_ip(request)
        if ip is None:
            return False
        for pattern in self.ips:
            if pattern == ip:
                return True
            if pattern.endswith("*") and ip.startswith(pattern[:-1]):
                return True
        return False

    def _match_expression(self, identity: Any, request: Any) -> bool:
        if self.expression is None:
            return True
        return bool(self.expression(identity, request))


class AccessControlFilter(Filter):
    """
    Filter enforcing ``AccessRule`` lists.

    Denial raises ``ForbiddenFault`` and never continues the chain.
    """

    message: Optional[str] = None

    def __init__(self, rules: Optional[Iterable[Any]] = None):
        self._rules: List[AccessRule] = []
        if rules is not None:
            self.rules = rules

    @property
    def rules(self) -> List[AccessRule]:
        return self._rules

    @rules.setter
    def rules(self, declarations: Iterable[Any]) -> None:
        self._rules = [AccessRule.from_declaration(d) for d in declarations or []]

    def pre_filter(self, chain: "FilterChain") -> bool:
        controller = chain.controller
        request = controller.request
        action_id = chain.action.id

        for rule in self._rules:
            if not rule.matches(action_id, request):
                continue
            if rule.allow:
                return True
            self.access_denied(controller, rule.message or self.message)
        return True

    def access_denied(self, controller: Any, message: Optional[str]) -> None:
        text = message or controller.context.t(
            controller.context.config.translation_category,
            "You are not authorized to perform this action.",
        )
        raise ForbiddenFault(text, metadata={"controller": controller.unique_id})
