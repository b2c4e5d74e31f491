"""Table-driven state machine used by the coordination components."""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_HISTORY_LIMIT = 50


class StateTransitionError(Exception):
    """Exception raised when a state transition is not declared."""

    def __init__(
        self,
        message: str,
        from_state: Enum | None = None,
        to_state: Enum | None = None,
    ) -> None:
        """Initialize state transition error.

        Args:
            message: Error message
            from_state: Source state of failed transition
            to_state: Target state of failed transition
        """
        super().__init__(message)
        self.from_state: Enum | None = from_state
        self.to_state: Enum | None = to_state


@dataclass
class StateContext[S: Enum]:
    """Holds the current state, the previous state and recent history.

    History keeps only the latest ``history_limit`` states so long-lived
    machines do not grow without bound.
    """

    history_limit: int = DEFAULT_HISTORY_LIMIT
    current_state: S | None = None
    previous_state: S | None = None
    _state_history: deque[S] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._state_history = deque(maxlen=self.history_limit)

    def set_current_state(self, state: S) -> None:
        """Set the current state and update history.

        Args:
            state: New current state
        """
        if self.current_state is not None:
            self.previous_state = self.current_state
        self.current_state = state
        self._state_history.append(state)

    def get_state_history(self) -> list[S]:
        """Get the retained state history.

        Returns:
            List of states in chronological order, oldest dropped first
        """
        return list(self._state_history)


@dataclass(frozen=True)
class StateTransition[S: Enum]:
    """Declared edge between two states."""

    from_state: S
    to_state: S


class StateMachine[S: Enum]:
    """State machine over an ``Enum`` of states.

    All mutation happens synchronously inside one event-loop turn, so no
    locking is needed.
    """

    def __init__(
        self,
        initial_state: S,
        transitions: Iterable[StateTransition[S]] = (),
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        """Initialize state machine.

        Args:
            initial_state: Initial state of the machine
            transitions: Transitions to register up front
            history_limit: Number of recent states kept in the context

        Raises:
            ValueError: If history_limit is less than 1
        """
        if history_limit < 1:
            msg = f"history_limit must be >= 1, got: {history_limit}"
            raise ValueError(msg)

        self.context: StateContext[S] = StateContext(history_limit=history_limit)
        self.context.set_current_state(initial_state)
        self._transitions: dict[S, set[S]] = defaultdict(set)
        for transition in transitions:
            self.add_transition(transition)

    @property
    def current_state(self) -> S:
        """Get current state of the machine.

        Returns:
            Current state
        """
        if self.context.current_state is None:
            msg = "State machine not properly initialized - no current state"
            raise RuntimeError(msg)
        return self.context.current_state

    def add_transition(self, transition: StateTransition[S]) -> None:
        """Add a state transition to the machine."""
        self._transitions[transition.from_state].add(transition.to_state)

    def can_transition_to(self, to_state: S) -> bool:
        """Check whether a transition to ``to_state`` is declared from the current state."""
        return to_state in self._transitions[self.current_state]

    def transition_to(self, to_state: S) -> bool:
        """Transition to the specified state.

        Args:
            to_state: Target state

        Returns:
            True if transition was successful

        Raises:
            StateTransitionError: If transition is not declared
        """
        current_state = self.current_state
        if not self.can_transition_to(to_state):
            raise StateTransitionError(
                f"Cannot transition from {current_state.name} to {to_state.name}",
                from_state=current_state,
                to_state=to_state,
            )

        self.context.set_current_state(to_state)
        return True
