"""Parameter selection and staged execution of contracts."""

from __future__ import annotations

import logging
import time
from typing import Any

from ledgerfuzz.contracts.base import Contract, ContractRun, ContractStage, ParameterKind
from ledgerfuzz.core.errors import StageError, error_message
from ledgerfuzz.core.sampling import RandomSampler

logger = logging.getLogger(__name__)


class ContractRunner:
    """Chooses parameters for a contract and drives it through its stages.

    Every stage runs at most once and nothing is retried: the first failure
    ends the run and is recorded on the returned ``ContractRun`` together
    with whatever the earlier stages produced.
    """

    def __init__(self, sampler: RandomSampler | None = None) -> None:
        self.sampler = sampler or RandomSampler()

    async def choose_parameters(self, contract: Contract) -> dict[str, Any] | None:
        """Pick every parameter in order, or ``None`` if no instance exists.

        Descriptor ``i`` is requested with all parameters ``< i`` already
        chosen. An empty value list or an inverted range is not an error:
        it means the current ledger state admits no instance of the contract.
        """
        chosen: dict[str, Any] = {}
        for index in range(contract.parameter_count):
            descriptor = await contract.describe_parameter(index, dict(chosen))
            if descriptor.is_empty:
                logger.info(
                    "No instance of %s available: parameter %r has no candidates",
                    contract.name, descriptor.name,
                    extra={"contract": contract.name},
                )
                return None

            if descriptor.kind is ParameterKind.LIST:
                if descriptor.weights is not None:
                    value = self.sampler.weighted_select(list(zip(descriptor.weights, descriptor.values)))
                else:
                    value = self.sampler.choice(descriptor.values)
            else:
                value = self.sampler.uniform_inclusive(descriptor.minimum, descriptor.maximum)
            chosen[descriptor.name] = value
        return chosen

    async def execute(self, contract: Contract, params: dict[str, Any]) -> ContractRun:
        run = ContractRun(contract=contract.name, params=dict(params), stage=ContractStage.PARAMETER_SELECTION)
        start = time.monotonic()
        try:
            await self._drive(contract, run)
        finally:
            run.duration_seconds = time.monotonic() - start
        return run

    async def _drive(self, contract: Contract, run: ContractRun) -> None:
        params = run.params

        run.stage = ContractStage.PRECONDITION
        try:
            run.precondition = await contract.precondition(params)
        except Exception as exc:
            self._fail(contract, run, f"Precondition error: {error_message(exc)}", exc)
            return

        run.stage = ContractStage.ACTION
        try:
            run.action_result = await contract.action(params)
        except Exception as exc:
            self._fail(contract, run, f"Action error: {error_message(exc)}", exc)
            return

        run.stage = ContractStage.POSTCONDITION
        try:
            verdict = await contract.postcondition(params, run.precondition, run.action_result)
        except Exception as exc:
            self._fail(contract, run, f"Postcondition error: {error_message(exc)}", exc)
            return

        run.verdict = bool(verdict)
        if not run.verdict:
            self._fail(contract, run, "Postcondition returned false")
            return

        run.stage = ContractStage.DONE
        run.ok = True
        logger.info("%s passed", contract.name, extra={"contract": contract.name})

    @staticmethod
    def _fail(contract: Contract, run: ContractRun, message: str, cause: BaseException | None = None) -> None:
        run.ok = False
        run.error = message
        run.failure = StageError(run.stage.value, message, cause)
        logger.error(
            "%s failed at %s: %s", contract.name, run.stage.value, message,
            extra={"contract": contract.name, "stage": run.stage.value},
        )
