"""
Order state machine for managing order status transitions
"""

from typing import Dict, List, Set
from manifesto.models.order import OrderStatus


class OrderStateMachine:
    """
    Manages valid order status transitions
    """

    def __init__(self):
        # Define valid transitions
        self.transitions: Dict[OrderStatus, Set[OrderStatus]] = {
            OrderStatus.AWAITING_VERIFICATION: {
                OrderStatus.VERIFIED,
                OrderStatus.CANCELLED
            },
            OrderStatus.VERIFIED: {
                OrderStatus.SHIPPED,
                OrderStatus.CANCELLED
            },
            OrderStatus.SHIPPED: {
                OrderStatus.DELIVERED
            },
            OrderStatus.DELIVERED: set(),  # Terminal state
            OrderStatus.CANCELLED: set()  # Terminal state
        }

    def can_transition(
        self,
        current_status: OrderStatus,
        new_status: OrderStatus
    ) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current order status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        valid_transitions = self.transitions.get(current_status, set())
        return new_status in valid_transitions

    def get_valid_transitions(
        self,
        current_status: OrderStatus
    ) -> List[OrderStatus]:
        return sorted(self.transitions.get(current_status, set()), key=lambda s: s.value)

    def is_terminal_state(self, status: OrderStatus) -> bool:
        return len(self.transitions.get(status, set())) == 0

    def is_cancellable(self, status: OrderStatus) -> bool:
        """
        Check if order can be cancelled in current status

        Args:
            status: Current order status

        Returns:
            True if order can be cancelled
        """
        return OrderStatus.CANCELLED in self.transitions.get(status, set())

    @property
    def cancellable_statuses(self) -> Set[OrderStatus]:
        return {status for status in self.transitions if self.is_cancellable(status)}
