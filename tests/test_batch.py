"""
Tests for batch colocalisation across studies, tissues and regions
"""

import threading
import time

import pytest

from qtlcoloc.colocalization.batch import (
    ColocTask,
    FailureList,
    ResultsTable,
    TaskOutcome,
    run_batch,
    run_task,
)
from qtlcoloc.colocalization.coloc import ColocAnalysis, ColocPriors
from qtlcoloc.exceptions import BatchFailureError, FetchError, InsufficientDataError
from qtlcoloc.harmonization.dataset import StudyKey
from qtlcoloc.utils.genomics import GenomicRegion

from conftest import dataset_from_z


REGION = GenomicRegion("1", 1, 10_000)


class DictFetcher:
    """Serves pre-built datasets by source name; unknown names fail."""
    
    def __init__(self, datasets, delays=None):
        self.datasets = datasets
        self.delays = delays or {}
        self.threads = set()
        self.lock = threading.Lock()
    
    def fetch(self, source, region):
        with self.lock:
            self.threads.add(threading.get_ident())
        time.sleep(self.delays.get(source, 0))
        if source not in self.datasets:
            raise RuntimeError(f"connection reset while reading {source}")
        return self.datasets[source]


@pytest.fixture
def gwas():
    return dataset_from_z([5.0, 0.5, 0.2, 1.0, 0.3])


def make_tasks(n):
    return [
        ColocTask(StudyKey(f"study{i:02d}", tissue="liver"), REGION, f"src{i}")
        for i in range(n)
    ]


class TestRunBatch:
    """Tests for run_batch."""
    
    def test_partial_failures_reported(self, gwas):
        tasks = make_tasks(10)
        failing = {"src2", "src5", "src8"}
        datasets = {
            t.source: dataset_from_z([4.0, 1.0, 0.5, 0.2, 0.1])
            for t in tasks if t.source not in failing
        }
        
        results, failures = run_batch(tasks, gwas, fetcher=DictFetcher(datasets), max_workers=4)
        
        assert len(results) == 7
        assert len(failures) == 3
        assert {f.key.study_id for f in failures} == {"study02", "study05", "study08"}
        assert all(f.error_type == "FetchError" for f in failures)
        assert "connection reset" in failures[0].reason
    
    def test_results_in_task_order(self, gwas):
        tasks = make_tasks(5)
        datasets = {t.source: dataset_from_z([4.0, 1.0, 0.5]) for t in tasks}
        # Later tasks finish first
        delays = {t.source: 0.02 * (5 - i) for i, t in enumerate(tasks)}
        
        results, _ = run_batch(
            tasks, gwas, fetcher=DictFetcher(datasets, delays), max_workers=5
        )
        
        assert [key for key, _ in results] == [t.key for t in tasks]
    
    def test_uses_worker_threads(self, gwas):
        tasks = make_tasks(6)
        datasets = {t.source: dataset_from_z([4.0, 1.0]) for t in tasks}
        fetcher = DictFetcher(datasets, {t.source: 0.05 for t in tasks})
        
        run_batch(tasks, gwas, fetcher=fetcher, max_workers=3)
        
        assert len(fetcher.threads) > 1
    
    def test_sequential_matches_parallel(self, gwas):
        tasks = make_tasks(4)
        datasets = {
            t.source: dataset_from_z([4.0 - i, 1.0, 0.5 + i])
            for i, t in enumerate(tasks)
        }
        
        serial, _ = run_batch(tasks, gwas, fetcher=DictFetcher(datasets), max_workers=1)
        parallel, _ = run_batch(tasks, gwas, fetcher=DictFetcher(datasets), max_workers=4)
        
        assert list(serial) == list(parallel)
    
    def test_all_failed_raises(self, gwas):
        tasks = make_tasks(3)
        
        with pytest.raises(BatchFailureError) as excinfo:
            run_batch(tasks, gwas, fetcher=DictFetcher({}))
        
        assert len(excinfo.value.failures) == 3
    
    def test_no_tasks(self, gwas):
        results, failures = run_batch([], gwas, fetcher=DictFetcher({}))
        
        assert len(results) == 0
        assert len(failures) == 0
    
    def test_fetcher_required(self, gwas):
        with pytest.raises(ValueError):
            run_batch(make_tasks(1), gwas)
    
    def test_callable_fetcher_and_priors(self, gwas):
        tasks = make_tasks(2)
        dataset = dataset_from_z([4.0, 1.0])
        
        results, _ = run_batch(
            tasks, gwas, priors=ColocPriors(p12=1e-6), fetcher=lambda source, region: dataset
        )
        default, _ = run_batch(tasks, gwas, fetcher=lambda source, region: dataset)
        
        assert len(results) == 2
        assert list(results)[0][1].pp_h4 < list(default)[0][1].pp_h4
    
    def test_gwas_restricted_to_task_region(self, gwas):
        elsewhere = GenomicRegion("2", 1, 10_000)
        tasks = [
            ColocTask(StudyKey("inside"), REGION, "a"),
            ColocTask(StudyKey("outside"), elsewhere, "a"),
        ]
        fetcher = DictFetcher({"a": dataset_from_z([4.0, 1.0])})
        
        results, failures = run_batch(tasks, gwas, fetcher=fetcher)
        
        assert [key.study_id for key, _ in results] == ["inside"]
        assert failures[0].error_type == "InsufficientDataError"
    
    def test_results_keyed_by_task(self, gwas):
        key = StudyKey("GTEx", "ge", "ENSG00000134243", "liver")
        dataset = dataset_from_z([4.0, 1.0], key=StudyKey("unrelated"))
        
        outcome = run_task(
            ColocTask(key, REGION, "a"), gwas, ColocAnalysis(), lambda s, r: dataset
        )
        
        assert outcome.ok
        assert outcome.key == key


class TestTaskOutcome:
    """Tests for tagged task outcomes."""
    
    def test_failed(self):
        outcome = TaskOutcome.failed(StudyKey("x"), InsufficientDataError("no overlap"))
        
        assert not outcome.ok
        assert outcome.result is None
        assert outcome.failure.error_type == "InsufficientDataError"
        assert outcome.failure.reason == "no overlap"
    
    def test_fetch_error_kept(self, gwas):
        def fetch(source, region):
            raise FetchError("HTTP 503", status_code=503)
        
        outcome = run_task(ColocTask(StudyKey("x"), REGION, "a"), gwas, ColocAnalysis(), fetch)
        
        assert outcome.failure.error_type == "FetchError"
        assert outcome.failure.reason == "HTTP 503"


class TestResultsTable:
    """Tests for ranking and tabulation."""
    
    def test_ranking_breaks_ties_by_key(self, gwas):
        tasks = [
            ColocTask(StudyKey("b"), REGION, "same"),
            ColocTask(StudyKey("a", tissue="lung"), REGION, "same"),
            ColocTask(StudyKey("a", tissue="blood"), REGION, "same"),
            ColocTask(StudyKey("c"), REGION, "weak"),
        ]
        fetcher = DictFetcher({
            "same": dataset_from_z([5.0, 0.5, 0.2]),
            "weak": dataset_from_z([0.5, 0.5, 0.5]),
        })
        
        results, _ = run_batch(tasks, gwas, fetcher=fetcher)
        ranked = [key for key, _ in results.ranked()]
        
        assert ranked == [
            StudyKey("a", tissue="blood"),
            StudyKey("a", tissue="lung"),
            StudyKey("b"),
            StudyKey("c"),
        ]
    
    def test_to_frame(self, gwas):
        tasks = make_tasks(2)
        fetcher = DictFetcher({
            "src0": dataset_from_z([0.5, 0.5, 0.5]),
            "src1": dataset_from_z([5.0, 0.5, 0.2]),
        })
        results, _ = run_batch(tasks, gwas, fetcher=fetcher)
        
        frame = results.to_frame()
        
        assert frame["study_id"].tolist() == ["study01", "study00"]
        assert frame["pp_h4"].is_monotonic_decreasing
        assert results.to_frame(ranked=False)["study_id"].tolist() == ["study00", "study01"]
    
    def test_empty_frames_have_columns(self):
        assert "pp_h4" in ResultsTable().to_frame().columns
        assert "reason" in FailureList().to_frame().columns
