"""
Batch Colocalization

Runs coloc.abf for many (study, tissue, molecular trait) contexts against
one GWAS dataset. Each task fetches its own eQTL data; a task that fails
is recorded with its reason and the batch carries on.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd
from tqdm import tqdm

from ..exceptions import BatchFailureError, ColocError, FetchError
from ..harmonization.dataset import AssociationDataset, StudyKey
from ..utils.genomics import GenomicRegion
from ..utils.logging import get_logger
from .coloc import ColocAnalysis, ColocPriors, ColocResult


logger = get_logger("batch")


@dataclass(frozen=True)
class ColocTask:
    """
    One colocalisation test to run.
    
    Attributes
    ----------
    key : StudyKey
        Identity of the eQTL context.
    region : GenomicRegion
        Candidate region.
    source : Any
        Locator passed to the fetcher (e.g. a TabixSource).
    """
    
    key: StudyKey
    region: GenomicRegion
    source: Any = None


@dataclass(frozen=True)
class TaskFailure:
    """Why a task produced no result."""
    
    key: StudyKey
    reason: str
    error_type: str
    
    def to_dict(self) -> dict:
        return {**self.key.to_dict(), "error_type": self.error_type, "reason": self.reason}


@dataclass(frozen=True)
class TaskOutcome:
    """Tagged result of one task: exactly one of ``result``/``failure`` is set."""
    
    key: StudyKey
    result: Optional[ColocResult] = None
    failure: Optional[TaskFailure] = None
    
    @property
    def ok(self) -> bool:
        return self.result is not None
    
    @classmethod
    def success(cls, key: StudyKey, result: ColocResult) -> "TaskOutcome":
        return cls(key=key, result=result)
    
    @classmethod
    def failed(cls, key: StudyKey, error: BaseException) -> "TaskOutcome":
        failure = TaskFailure(key=key, reason=str(error), error_type=type(error).__name__)
        return cls(key=key, failure=failure)


class ResultsTable:
    """
    Append-only collection of colocalisation results keyed by study.
    """
    
    def __init__(self):
        self._entries: List[Tuple[StudyKey, ColocResult]] = []
    
    def append(self, key: StudyKey, result: ColocResult) -> None:
        self._entries.append((key, result))
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def __iter__(self) -> Iterator[Tuple[StudyKey, ColocResult]]:
        return iter(list(self._entries))
    
    def ranked(self) -> List[Tuple[StudyKey, ColocResult]]:
        """Entries by PP.H4 descending, ties broken by study key."""
        return sorted(self._entries, key=lambda entry: (-entry[1].pp_h4, entry[0]))
    
    def to_frame(self, ranked: bool = True) -> pd.DataFrame:
        """
        Tabulate results, one row per context.
        
        Parameters
        ----------
        ranked : bool
            Sort by PP.H4 (descending); otherwise keep insertion order.
        """
        entries = self.ranked() if ranked else self._entries
        records = [{**key.to_dict(), **result.to_dict()} for key, result in entries]
        columns = list(StudyKey.__dataclass_fields__) + [
            "nsnps", "pp_h0", "pp_h1", "pp_h2", "pp_h3", "pp_h4",
            "interpretation", "lead_variant",
        ]
        return pd.DataFrame(records, columns=columns)


class FailureList:
    """
    Append-only list of failed tasks.
    """
    
    def __init__(self):
        self._failures: List[TaskFailure] = []
    
    def append(self, failure: TaskFailure) -> None:
        self._failures.append(failure)
    
    def __len__(self) -> int:
        return len(self._failures)
    
    def __iter__(self) -> Iterator[TaskFailure]:
        return iter(list(self._failures))
    
    def __getitem__(self, index: int) -> TaskFailure:
        return self._failures[index]
    
    def to_frame(self) -> pd.DataFrame:
        columns = list(StudyKey.__dataclass_fields__) + ["error_type", "reason"]
        return pd.DataFrame([f.to_dict() for f in self._failures], columns=columns)


def _resolve_fetch(fetcher: Any) -> Callable[[Any, GenomicRegion], AssociationDataset]:
    if hasattr(fetcher, "fetch"):
        return fetcher.fetch
    if callable(fetcher):
        return fetcher
    raise TypeError(f"Fetcher must be callable or expose fetch(), got {type(fetcher).__name__}")


def run_task(
    task: ColocTask,
    gwas_dataset: AssociationDataset,
    analysis: ColocAnalysis,
    fetch: Callable[[Any, GenomicRegion], AssociationDataset],
) -> TaskOutcome:
    """
    Fetch, align and colocalise one task. Never raises.
    
    Parameters
    ----------
    task : ColocTask
        The task.
    gwas_dataset : AssociationDataset
        GWAS data shared by all tasks; only read.
    analysis : ColocAnalysis
        Configured analysis.
    fetch : callable
        ``fetch(source, region) -> AssociationDataset``.
        
    Returns
    -------
    TaskOutcome
        Success with a result, or failure with its reason.
    """
    try:
        eqtl_dataset = fetch(task.source, task.region)
    except ColocError as e:
        return TaskOutcome.failed(task.key, e)
    except Exception as e:
        error = FetchError(f"Fetch failed for {task.key.label} at {task.region}: {e}")
        return TaskOutcome.failed(task.key, error)
    
    try:
        gwas_region = gwas_dataset.subset_region(task.region)
        result = analysis.evaluate(eqtl_dataset.with_key(task.key), gwas_region)
    except ColocError as e:
        return TaskOutcome.failed(task.key, e)
    except Exception as e:
        logger.exception(f"Unexpected error in task {task.key.label}")
        return TaskOutcome.failed(task.key, e)
    
    return TaskOutcome.success(task.key, result)


def run_batch(
    tasks: Sequence[ColocTask],
    gwas_dataset: AssociationDataset,
    priors: Optional[ColocPriors] = None,
    fetcher: Any = None,
    analysis: Optional[ColocAnalysis] = None,
    max_workers: int = 1,
    show_progress: bool = False,
) -> Tuple[ResultsTable, FailureList]:
    """
    Run colocalisation for every task against one GWAS dataset.
    
    Tasks are independent and may run on a thread pool; outcomes are
    appended in task order whatever order they finish in.
    
    Parameters
    ----------
    tasks : sequence of ColocTask
        Tasks to run.
    gwas_dataset : AssociationDataset
        GWAS summary statistics covering the task regions.
    priors : ColocPriors, optional
        Prior probabilities (ignored when ``analysis`` is given).
    fetcher : object
        Region fetcher with ``fetch(source, region)``, or such a callable.
    analysis : ColocAnalysis, optional
        Pre-configured analysis.
    max_workers : int
        Number of worker threads.
    show_progress : bool
        Display a progress bar.
        
    Returns
    -------
    tuple
        (ResultsTable, FailureList)
        
    Raises
    ------
    BatchFailureError
        If at least one task ran and none succeeded.
    """
    if fetcher is None:
        raise ValueError("A fetcher is required")
    
    fetch = _resolve_fetch(fetcher)
    analysis = analysis or ColocAnalysis(priors=priors)
    tasks = list(tasks)
    
    results = ResultsTable()
    failures = FailureList()
    
    if not tasks:
        logger.info("No tasks to run")
        return results, failures
    
    logger.info(f"Running {len(tasks)} colocalisation tasks with {max_workers} worker(s)")
    
    outcomes: List[Optional[TaskOutcome]] = [None] * len(tasks)
    progress = tqdm(total=len(tasks), desc="coloc", disable=not show_progress)
    
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {
            executor.submit(run_task, task, gwas_dataset, analysis, fetch): i
            for i, task in enumerate(tasks)
        }
        
        for future in as_completed(futures):
            outcomes[futures[future]] = future.result()
            progress.update(1)
    
    progress.close()
    
    for outcome in outcomes:
        if outcome.ok:
            results.append(outcome.key, outcome.result)
        else:
            failures.append(outcome.failure)
            logger.warning(
                f"Task {outcome.key.label} failed ({outcome.failure.error_type}): "
                f"{outcome.failure.reason}"
            )
    
    logger.info(f"Batch complete: {len(results)} succeeded, {len(failures)} failed")
    
    if len(results) == 0:
        raise BatchFailureError(
            f"All {len(tasks)} colocalisation tasks failed",
            failures=list(failures),
        )
    
    return results, failures
