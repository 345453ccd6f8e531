import asyncio
from datetime import datetime, timezone
import time

import hydra
from hydra.utils import instantiate
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from blockevo.evolution.engine import BlockNESEngine, EngineConfig
from blockevo.problems.base import FitnessFunction
from blockevo.runner import EvolutionRunner, StopCondition
from blockevo.utils.logger_setup import setup_logger


async def run_experiment(cfg: DictConfig) -> None:
    start_time = time.time()

    logger.info("=" * 80)
    logger.info("blockevo experiment")
    logger.info("=" * 80)
    logger.info(f"Start time: {datetime.now(timezone.utc).isoformat()}")

    logger.info("Step 1/3: Initializing components...")
    components = instantiate(cfg.experiment, _convert_="all")
    problem: FitnessFunction = components["problem"]
    engine_config: EngineConfig = components["engine"]
    stop_conditions: list[StopCondition] = components["stop_conditions"]
    logger.info(f"  Problem: {type(problem).__name__}")
    logger.info(f"  Engine: {engine_config.model_dump()}")

    logger.info("Step 2/3: Running evolution...")
    with BlockNESEngine(problem, engine_config) as engine:
        runner = EvolutionRunner(engine, stop_conditions)
        try:
            population = await runner.run()
        except KeyboardInterrupt:
            logger.info("Evolution interrupted by user")
            return

        logger.info("Step 3/3: Results")
        best = population.best
        logger.info(f"  Generations: {population.generation}")
        logger.info(f"  Stop reason: {runner.stop_reason}")
        logger.info(f"  Best fitness: {best.fitness:.6g}")
        if best.auxiliary is not None:
            logger.info(f"  Auxiliary output: {best.auxiliary}")
        logger.info(f"  Metrics: {engine.metrics.to_dict()}")

    duration = time.time() - start_time
    logger.info(f"Total experiment duration: {duration:.2f} seconds")
    logger.info("=" * 80)


@hydra.main(version_base=None, config_path="config", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main entrypoint with Hydra configuration management."""
    log_file_path = setup_logger(
        log_dir=cfg.logging.log_dir,
        level=cfg.logging.level,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    logger.info(f"Log file: {log_file_path}")
    logger.debug("Resolved config:\n{}", OmegaConf.to_yaml(cfg))
    asyncio.run(run_experiment(cfg))


if __name__ == "__main__":
    main()
