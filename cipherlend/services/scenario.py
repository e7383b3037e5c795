"""Scripted user flows against a bootstrapped protocol.

A scenario is a YAML document with a ``users`` map (name -> address) and a
list of ``steps``. Each step names an ``action`` and its parameters; a step
may declare ``expect: <ErrorName>`` when it is supposed to be rejected.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from ..errors import LendingError
from ..oracles.pyth import to_fixed_point
from .bootstrap import ProtocolStack

logger = logging.getLogger(__name__)

DEFAULT_OPERATOR_TTL = 3600

# Role names usable wherever a scenario expects a user.
_ROLE_ALIASES = ("admin", "pool_admin", "emergency_admin", "risk_admin")


@dataclass(frozen=True)
class ScenarioStep:
    action: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def expect(self) -> str | None:
        return self.params.get("expect")


@dataclass(frozen=True)
class Scenario:
    name: str = "scenario"
    users: dict[str, str] = field(default_factory=dict)
    steps: tuple[ScenarioStep, ...] = ()


@dataclass(frozen=True)
class StepResult:
    index: int
    action: str
    user: str
    error: str | None = None
    expected: str | None = None

    @property
    def ok(self) -> bool:
        return self.error == self.expected


@dataclass
class ScenarioReport:
    name: str
    results: list[StepResult] = field(default_factory=list)
    # user -> symbol -> {"supplied", "borrowed", "wallet"}
    balances: dict[str, dict[str, dict[str, int]]] = field(default_factory=dict)

    @property
    def failures(self) -> list[StepResult]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def format(self) -> str:
        lines = [f"Scenario: {self.name}"]
        for r in self.results:
            if r.ok:
                outcome = f"rejected ({r.error}) as expected" if r.error else "ok"
            elif r.error:
                outcome = f"FAILED: {r.error}"
            else:
                outcome = f"FAILED: expected {r.expected}"
            lines.append(f"  [{r.index:>2}] {r.action:<10} {r.user:<12} {outcome}")
        lines.append("")
        lines.append("Balances (decrypted by their owners):")
        for user, per_token in self.balances.items():
            for symbol, amounts in per_token.items():
                lines.append(
                    f"  {user:<12} {symbol:<8} supplied={amounts['supplied']:>14,} "
                    f"borrowed={amounts['borrowed']:>14,} wallet={amounts['wallet']:>14,}"
                )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _build_steps(raw: list[dict[str, Any]]) -> tuple[ScenarioStep, ...]:
    steps: list[ScenarioStep] = []
    for i, s in enumerate(raw, start=1):
        action = s.get("action")
        if action not in _ACTIONS:
            raise ValueError(f"Step {i}: unknown action '{action}'")
        params = {k: v for k, v in s.items() if k != "action"}
        steps.append(ScenarioStep(action=action, params=params))
    return tuple(steps)


def load_scenario(path: str | Path) -> Scenario:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    scenario = Scenario(
        name=raw.get("name", path.stem),
        users={str(k): str(v) for k, v in raw.get("users", {}).items()},
        steps=_build_steps(raw.get("steps", [])),
    )
    if not scenario.steps:
        raise ValueError(f"Scenario '{scenario.name}' has no steps")
    return scenario


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class _Runner:
    def __init__(self, stack: ProtocolStack, scenario: Scenario) -> None:
        self.stack = stack
        self.scenario = scenario

    def address(self, user: str) -> str:
        if user in self.scenario.users:
            return self.scenario.users[user]
        if user in _ROLE_ALIASES:
            return getattr(self.stack.config.protocol, user)
        return user

    def encrypt(self, caller: str, amount: int):
        return self.stack.fhe.encrypt_input(int(amount), self.stack.pool.address, caller)

    # Actions -----------------------------------------------------------

    def mint(self, p: dict[str, Any]) -> None:
        token = self.stack.token(p["token"])
        token.mint(self.stack.config.protocol.admin, self.address(p["user"]), int(p["amount"]))

    def set_operator(self, p: dict[str, Any]) -> None:
        token = self.stack.token(p["token"])
        operator = self.address(p["operator"]) if "operator" in p else self.stack.pool.address
        ttl = int(p.get("ttl", DEFAULT_OPERATOR_TTL))
        token.set_operator(self.address(p["user"]), operator, token.clock() + ttl)

    def _user_op(self, p: dict[str, Any], op: Callable[..., Any], **kwargs: Any) -> None:
        caller = self.address(p["user"])
        enc = self.encrypt(caller, p["amount"])
        op(caller, self.stack.token(p["token"]).address, enc.handle, enc.proof, **kwargs)

    def supply(self, p: dict[str, Any]) -> None:
        self._user_op(p, self.stack.pool.supply)

    def withdraw(self, p: dict[str, Any]) -> None:
        self._user_op(p, self.stack.pool.withdraw)

    def borrow(self, p: dict[str, Any]) -> None:
        self._user_op(p, self.stack.pool.borrow)

    def repay(self, p: dict[str, Any]) -> None:
        self._user_op(p, self.stack.pool.repay, is_repaying_all=bool(p.get("all", False)))

    def collateral(self, p: dict[str, Any]) -> None:
        self.stack.pool.set_user_use_reserve_as_collateral(
            self.address(p["user"]),
            self.stack.token(p["token"]).address,
            bool(p.get("enabled", True)),
        )

    def pause(self, p: dict[str, Any]) -> None:
        self.stack.pool.pause(self.address(p.get("user", "emergency_admin")))

    def unpause(self, p: dict[str, Any]) -> None:
        self.stack.pool.unpause(self.address(p.get("user", "emergency_admin")))

    def set_price(self, p: dict[str, Any]) -> None:
        self.stack.oracle.set_price(
            self.address(p.get("user", "admin")),
            self.stack.token(p["token"]).address,
            to_fixed_point(float(p["price"])),
        )

    # Reporting ---------------------------------------------------------

    def balances(self) -> dict[str, dict[str, dict[str, int]]]:
        fhe, pool = self.stack.fhe, self.stack.pool
        out: dict[str, dict[str, dict[str, int]]] = {}
        for name, address in self.scenario.users.items():
            per_token: dict[str, dict[str, int]] = {}
            for symbol, token in self.stack.tokens.items():
                supplied = pool.get_user_supplied_balance(address, token.address)
                borrowed = pool.get_user_borrowed_balance(address, token.address)
                wallet = token.confidential_balance_of(address)
                per_token[symbol] = {
                    "supplied": 0 if supplied is None else fhe.decrypt(supplied, address),
                    "borrowed": 0 if borrowed is None else fhe.decrypt(borrowed, address),
                    "wallet": 0 if wallet is None else fhe.decrypt(wallet, address),
                }
            out[name] = per_token
        return out


_ACTIONS = (
    "mint",
    "set_operator",
    "supply",
    "withdraw",
    "borrow",
    "repay",
    "collateral",
    "pause",
    "unpause",
    "set_price",
)


def run_scenario(stack: ProtocolStack, scenario: Scenario) -> ScenarioReport:
    """Execute every step; protocol rejections are recorded, not raised."""
    runner = _Runner(stack, scenario)
    report = ScenarioReport(name=scenario.name)

    for i, step in enumerate(scenario.steps, start=1):
        user = str(step.params.get("user", "-"))
        error = None
        try:
            getattr(runner, step.action)(step.params)
        except LendingError as e:
            error = type(e).__name__
            logger.info("Step %d (%s) rejected: %s", i, step.action, error)
        result = StepResult(
            index=i, action=step.action, user=user, error=error, expected=step.expect
        )
        if not result.ok:
            logger.warning("Step %d (%s) did not go as expected", i, step.action)
        report.results.append(result)

    report.balances = runner.balances()
    return report
