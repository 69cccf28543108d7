from dataclasses import dataclass
from typing import Optional

from reagent.domain.messages import Msg


@dataclass
class LoopState:
    """Progress of one reasoning/acting loop."""

    max_iters: int
    iteration: int = 0
    reply: Optional[Msg] = None

    def advance(self) -> int:
        """Count a new iteration and return its one-based number."""

        if self.iteration >= self.max_iters:
            raise RuntimeError("Iteration bound exceeded.")
        self.iteration += 1
        return self.iteration

    @property
    def exhausted(self) -> bool:
        """Whether the iteration bound has been reached."""

        return self.iteration >= self.max_iters
