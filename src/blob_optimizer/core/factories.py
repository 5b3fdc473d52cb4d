"""Factory classes for creating configured service instances."""

import logging
from typing import Any, Optional, TextIO

import boto3

from ..stores.s3 import S3ObjectStore
from .exceptions import ConfigurationError
from .models import OptimizerConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import (
    BatchProcessor,
    LoggerProtocol,
    ObjectStoreProtocol,
    UploadParserProtocol,
)
from .services import (
    ManifestUploadParser,
    ObjectReplacerService,
    SerialBatchProcessor,
    ThreadedBatchProcessor,
    TranscoderService,
    UploadOptimizer,
)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(
        name: str, level: int = logging.INFO, stream: Optional[TextIO] = None
    ) -> LoggerProtocol:
        """Create a structured logger instance."""
        return StructuredLogger(name, level, stream)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> Any:
        """Create S3 client with optional configuration."""
        session = boto3.Session()
        return session.client("s3", **kwargs)


class OptimizerFactory:
    """Factory for creating the complete optimization pipeline."""

    @staticmethod
    def create_batch_processor(
        store: ObjectStoreProtocol,
        logger: LoggerProtocol,
        processor: str = "serial",
        max_workers: int = 8,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> BatchProcessor:
        """Create a batch processor for the given strategy."""
        replacer = ObjectReplacerService(
            store, TranscoderService(), logger, metrics_collector
        )
        if processor == "serial":
            return SerialBatchProcessor(replacer, logger)
        if processor == "multithread":
            return ThreadedBatchProcessor(replacer, logger, max_workers=max_workers)
        raise ConfigurationError(f"Unknown processor: {processor}")

    @staticmethod
    def create_optimizer(
        store: Optional[ObjectStoreProtocol] = None,
        parser: Optional[UploadParserProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        config: Optional[OptimizerConfig] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> UploadOptimizer:
        """Create a fully configured upload optimizer.

        Without an explicit store, an S3 store is built from the config.
        """
        if logger is None:
            debug = config is not None and config.debug
            logger = LoggerFactory.create_logger(
                "blob_optimizer", logging.DEBUG if debug else logging.INFO
            )

        if store is None:
            if config is None:
                raise ConfigurationError("A store or a config with a bucket is required")
            store = S3ObjectStore(
                S3ClientFactory.create_s3_client(), config.bucket, config.prefix
            )

        if parser is None:
            parser = ManifestUploadParser(store, logger)

        processor = config.processor if config else "serial"
        max_workers = config.max_workers if config else 8
        batch_processor = OptimizerFactory.create_batch_processor(
            store, logger, processor, max_workers, metrics_collector
        )

        return UploadOptimizer(parser, batch_processor, logger)
