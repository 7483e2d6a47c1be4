"""
End-to-end colocalisation run driven by a YAML configuration.

Loads the GWAS summary statistics (local file or GWAS Catalog), lifts them
to the eQTL assembly if needed, builds one task per (eQTL source,
molecular trait, region), runs the batch and writes the result tables.
"""

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .colocalization.batch import ColocTask, FailureList, ResultsTable, run_batch
from .colocalization.coloc import ColocAnalysis
from .datasources.eqtl_catalogue import API_URL as EQTL_API_URL
from .datasources.eqtl_catalogue import FTP_URL as EQTL_FTP_URL
from .datasources.eqtl_catalogue import EQTLCatalogueClient
from .datasources.gwas_catalog import API_URL as GWAS_API_URL
from .datasources.gwas_catalog import GWASCatalogClient, GWASCatalogSource
from .datasources.tabix import TabixFetcher, TabixSource
from .exceptions import BatchFailureError
from .harmonization.dataset import CASE_CONTROL, QUANTITATIVE, AssociationDataset, StudyKey
from .harmonization.harmonizer import SumstatsHarmonizer
from .harmonization.liftover import LiftOverPipeline, normalize_assembly
from .utils.config import load_run_config
from .utils.genomics import GenomicRegion
from .utils.io import read_sumstats, write_table
from .utils.logging import get_logger


logger = get_logger("pipeline")


def parse_regions(config: Dict[str, Any]) -> List[Tuple[GenomicRegion, List[str]]]:
    """
    Read the ``regions`` section.
    
    Each entry is a mapping with ``region`` (or ``chromosome``/``start``/
    ``end``) and a non-empty ``molecular_trait_ids`` list.
    """
    parsed = []
    for entry in config["regions"]:
        if not isinstance(entry, dict) or not entry.get("molecular_trait_ids"):
            raise ValueError(f"Region needs a mapping with 'molecular_trait_ids': {entry!r}")
        if "region" in entry:
            region = GenomicRegion.from_string(entry["region"])
        else:
            region = GenomicRegion(entry["chromosome"], entry["start"], entry["end"])
        parsed.append((region, list(entry["molecular_trait_ids"])))
    return parsed


def load_gwas(
    config: Dict[str, Any],
    regions: List[GenomicRegion],
) -> AssociationDataset:
    """
    Load GWAS summary statistics as one dataset covering all regions.
    
    Parameters
    ----------
    config : dict
        Run configuration.
    regions : list of GenomicRegion
        Regions to fetch when reading from the GWAS Catalog.
        
    Returns
    -------
    AssociationDataset
        GWAS dataset, on the eQTL assembly.
    """
    gwas_config = config["gwas"]
    study_type = gwas_config.get("study_type", CASE_CONTROL)
    sample_size = gwas_config.get("sample_size")
    case_fraction = gwas_config.get("case_fraction")
    harmonizer = SumstatsHarmonizer()
    
    if "path" in gwas_config:
        logger.info(f"Reading GWAS summary statistics from {gwas_config['path']}")
        gwas = harmonizer.standardize(
            read_sumstats(gwas_config["path"]),
            study_type=study_type,
            key=StudyKey(study_id=gwas_config.get("name", "gwas"), quant_method="gwas"),
            sample_size=sample_size,
            case_fraction=case_fraction,
            sd_y=gwas_config.get("sd_y", 1.0),
        )
    else:
        resources = config.get("resources", {})
        client = GWASCatalogClient(
            api_url=resources.get("gwas_catalog", {}).get("api_url", GWAS_API_URL),
            timeout=resources.get("timeout", 60),
            page_size=resources.get("page_size", 1000),
        )
        source = GWASCatalogSource(
            study_accession=gwas_config["study_accession"],
            study_type=study_type,
            sample_size=sample_size,
            case_fraction=case_fraction,
        )
        parts = [client.fetch(source, region) for region in regions]
        # Overlapping regions return the same rows more than once
        combined = pd.concat([p.df for p in parts], ignore_index=True).drop_duplicates()
        gwas = parts[0].with_frame(combined)
    
    source_build = gwas_config.get("assembly")
    target_build = config["eqtl"].get("assembly", "GRCh38")
    if source_build and normalize_assembly(source_build) != normalize_assembly(target_build):
        gwas = LiftOverPipeline(source_build, target_build).lift_dataset(gwas)
    
    return gwas


def build_tasks(
    config: Dict[str, Any],
    regions: List[Tuple[GenomicRegion, List[str]]],
) -> List[ColocTask]:
    """
    Tasks for every configured eQTL source, region and molecular trait.
    
    Explicit ``eqtl.sources`` entries point at tabix files; an
    ``eqtl.catalogue`` mapping holds eQTL Catalogue dataset filters.
    """
    eqtl_config = config["eqtl"]
    variant_column = eqtl_config.get("variant_column", "rsid")
    tasks: List[ColocTask] = []
    
    datasets = []
    if eqtl_config.get("catalogue"):
        resources = config.get("resources", {}).get("eqtl_catalogue", {})
        client = EQTLCatalogueClient(
            api_url=resources.get("api_url", EQTL_API_URL),
            ftp_url=resources.get("ftp_url", EQTL_FTP_URL),
            timeout=config.get("resources", {}).get("timeout", 60),
            page_size=config.get("resources", {}).get("page_size", 1000),
        )
        datasets = client.list_datasets(**eqtl_config["catalogue"])
    
    for region, trait_ids in regions:
        region_tasks = []
        for source_config in eqtl_config.get("sources", []):
            for trait_id in trait_ids:
                key = StudyKey(
                    study_id=source_config["study_id"],
                    quant_method=source_config.get("quant_method", "ge"),
                    molecular_trait_id=trait_id,
                    tissue=source_config.get("tissue", ""),
                )
                source = TabixSource(
                    path=source_config["path"],
                    molecular_trait_id=trait_id,
                    study_type=source_config.get("study_type", QUANTITATIVE),
                    sample_size=source_config.get("sample_size"),
                    variant_column=variant_column,
                    chrom_prefix=source_config.get("chrom_prefix", ""),
                )
                region_tasks.append(ColocTask(key, region, source))
        
        if datasets:
            for task in client.build_tasks(datasets, trait_ids, region):
                source = replace(task.source, variant_column=variant_column)
                region_tasks.append(ColocTask(task.key, task.region, source))
        
        if not region_tasks:
            logger.warning(f"Region {region} yields no tasks; check eqtl sources and filters")
        tasks.extend(region_tasks)
    
    return tasks


def write_outputs(
    results: ResultsTable,
    failures: FailureList,
    output_dir: str | Path,
    compress: bool = False,
) -> Dict[str, Path]:
    """Write the ranked results and the failure list as TSV files."""
    output_dir = Path(output_dir)
    paths = {
        "results": write_table(results.to_frame(), output_dir / "coloc_results.tsv", compress=compress),
        "failures": write_table(failures.to_frame(), output_dir / "coloc_failures.tsv", compress=compress),
    }
    logger.info(f"Wrote {len(results)} results and {len(failures)} failures to {output_dir}")
    return paths


def run_pipeline(
    config_path: str | Path,
    workers: Optional[int] = None,
    dry_run: bool = False,
    output_dir: Optional[str | Path] = None,
) -> Tuple[ResultsTable, FailureList]:
    """
    Run colocalisation as described by a configuration file.
    
    Parameters
    ----------
    config_path : str or Path
        Run configuration (merged over packaged defaults).
    workers : int, optional
        Worker threads; overrides ``batch.max_workers``.
    dry_run : bool
        Build tasks and report them without fetching or computing.
    output_dir : str or Path, optional
        Overrides ``output.directory``.
        
    Returns
    -------
    tuple
        (ResultsTable, FailureList)
    """
    config = load_run_config(config_path)
    regions = parse_regions(config)
    tasks = build_tasks(config, regions)
    logger.info(f"Built {len(tasks)} tasks over {len(regions)} regions")
    
    if dry_run:
        for task in tasks:
            logger.info(f"[dry-run] {task.key.label} {task.region} <- {task.source.path}")
        return ResultsTable(), FailureList()
    
    gwas = load_gwas(config, [region for region, _ in regions])
    batch_config = config.get("batch", {})
    output_config = config.get("output", {})
    output_dir = output_dir or output_config.get("directory", "results")
    
    try:
        results, failures = run_batch(
            tasks,
            gwas,
            fetcher=TabixFetcher(timeout=config.get("resources", {}).get("timeout", 300)),
            analysis=ColocAnalysis.from_config(config["coloc"]),
            max_workers=workers or batch_config.get("max_workers", 1),
            show_progress=batch_config.get("show_progress", False),
        )
    except BatchFailureError as e:
        failures = FailureList()
        for failure in e.failures:
            failures.append(failure)
        write_outputs(ResultsTable(), failures, output_dir, output_config.get("compress", False))
        raise
    
    write_outputs(results, failures, output_dir, output_config.get("compress", False))
    return results, failures
