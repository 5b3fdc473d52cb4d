"""Service implementations for the upload optimization pipeline."""

import io
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import closing
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from .error_handling import BatchOperationContextManager
from .exceptions import (
    ImageDecodeError,
    ImageEncodeError,
    ImageProcessingError,
    UpstreamParseError,
)
from .image_utils import (
    OUTPUT_CONTENT_TYPE,
    OUTPUT_FORMAT,
    compute_target_size,
    is_supported_mime_type,
    to_jpeg_compatible,
)
from .models import (
    CompressionOptions,
    ReplacementOutcome,
    ReplacementResult,
    StoredObjectRef,
    UploadManifest,
    UploadResult,
)
from .observability import LogContext, MetricsCollector, PerformanceMetrics
from .protocols import (
    BatchProcessor,
    LoggerProtocol,
    ObjectStoreProtocol,
    ReplacementService,
    UploadParserProtocol,
)


class TranscoderService:
    """Decode, optionally downscale and re-encode images as JPEG. No I/O."""

    def __init__(self, resample: Image.Resampling = Image.Resampling.LANCZOS):
        self._resample = resample

    def transcode(self, source: BinaryIO, options: CompressionOptions) -> bytes:
        """
        Transcode an image stream into JPEG bytes.

        Args:
            source: Readable stream holding the original image
            options: Quality and maximum dimension to apply

        Returns:
            The encoded JPEG bytes

        Raises:
            ImageDecodeError: If the stream is not a readable image
            ImageEncodeError: If resizing or encoding fails
        """
        image = self._decode(source)
        try:
            image = to_jpeg_compatible(image)
        except (OSError, ValueError) as e:
            raise ImageEncodeError(f"Mode conversion failed: {e}") from e

        target = compute_target_size(image.width, image.height, options.max_dimension)
        if target.changed:
            if target.width < 1 or target.height < 1:
                raise ImageEncodeError(
                    f"Cannot scale {image.width}x{image.height} to "
                    f"{target.width}x{target.height}"
                )
            try:
                image = image.resize((target.width, target.height), self._resample)
            except (OSError, ValueError) as e:
                raise ImageEncodeError(f"Resizing failed: {e}") from e

        output_stream = io.BytesIO()
        try:
            image.save(output_stream, format=OUTPUT_FORMAT, quality=options.quality)
        except (OSError, ValueError) as e:
            raise ImageEncodeError(f"JPEG encoding failed: {e}") from e
        return output_stream.getvalue()

    def _decode(self, source: BinaryIO) -> "Image.Image":
        # Image.open needs a seekable stream, store bodies usually are not
        image_stream = io.BytesIO(source.read())
        try:
            image = Image.open(image_stream)
            image.load()
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
        ) as e:
            raise ImageDecodeError(f"Image decoding failed: {e}") from e
        return image


class ObjectReplacerService(ReplacementService):
    """Replace one stored image with its transcoded version.

    Never raises: every failure leaves the original object in place and
    returns its ref. The original is deleted only once the new object has
    been written and resolved through the store.
    """

    def __init__(
        self,
        store: ObjectStoreProtocol,
        transcoder: TranscoderService,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._store = store
        self._transcoder = transcoder
        self._logger = logger
        self._metrics_collector = metrics_collector

    def replace_with_outcome(
        self, ref: StoredObjectRef, options: CompressionOptions
    ) -> ReplacementResult:
        start_time = time.time()
        log_context = LogContext(
            correlation_id=f"blob_{ref.key}_{int(start_time * 1000)}",
            operation="replace_object",
            component="object_replacer",
        ).with_metadata(key=ref.key, content_type=ref.content_type)

        result = self._replace(ref, options, log_context)
        end_time = time.time()
        result.processing_time = end_time - start_time

        if self._metrics_collector is not None:
            self._metrics_collector.record_metric(
                PerformanceMetrics(
                    operation="replace_object",
                    start_time=start_time,
                    end_time=end_time,
                    success=result.outcome
                    in (ReplacementOutcome.UNSUPPORTED, ReplacementOutcome.REPLACED),
                    error_message=result.error or None,
                    metadata={"key": ref.key, "outcome": result.outcome.value},
                )
            )
        return result

    def _replace(
        self, ref: StoredObjectRef, options: CompressionOptions, log_context: LogContext
    ) -> ReplacementResult:
        if not is_supported_mime_type(ref.content_type):
            self._logger.debug("Unsupported content type, keeping object", log_context)
            return ReplacementResult(
                original=ref, ref=ref, outcome=ReplacementOutcome.UNSUPPORTED
            )

        # Read and transcode
        try:
            reader = self._store.open_reader(ref.key)
        except Exception as e:
            return self._unchanged(ref, ReplacementOutcome.READ_FAILED, e, log_context)

        try:
            with closing(reader):
                self._logger.debug(
                    "Transcoding image", log_context.with_operation("transcode")
                )
                encoded = self._transcoder.transcode(reader, options)
        except ImageProcessingError as e:
            return self._unchanged(ref, ReplacementOutcome.DECODE_FAILED, e, log_context)
        except Exception as e:
            return self._unchanged(ref, ReplacementOutcome.READ_FAILED, e, log_context)

        # Write the new object; an unfinalized writer is simply abandoned
        try:
            writer = self._store.open_writer(OUTPUT_CONTENT_TYPE)
            writer.write(encoded)
            new_key = self._store.finalize(writer)
        except Exception as e:
            return self._unchanged(ref, ReplacementOutcome.WRITE_FAILED, e, log_context)

        try:
            new_ref = self._store.stat(new_key)
        except Exception as e:
            self._logger.error(
                "New object could not be resolved and is left orphaned in the store",
                log_context.with_metadata(new_key=new_key, error=str(e)),
            )
            return ReplacementResult(
                original=ref,
                ref=ref,
                outcome=ReplacementOutcome.STAT_FAILED,
                error=str(e),
            )

        # The new object is confirmed, deleting the old one is best-effort
        try:
            self._store.delete(ref.key)
        except Exception as e:
            self._logger.warning(
                "Old object could not be deleted",
                log_context.with_metadata(new_key=new_ref.key, error=str(e)),
            )
            return ReplacementResult(
                original=ref,
                ref=new_ref,
                outcome=ReplacementOutcome.REPLACED_DELETE_FAILED,
                error=str(e),
            )

        self._logger.info(
            "Replaced object",
            log_context,
            new_key=new_ref.key,
            original_size=ref.size,
            new_size=new_ref.size,
        )
        return ReplacementResult(
            original=ref, ref=new_ref, outcome=ReplacementOutcome.REPLACED
        )

    def _unchanged(
        self,
        ref: StoredObjectRef,
        outcome: ReplacementOutcome,
        error: Exception,
        log_context: LogContext,
    ) -> ReplacementResult:
        self._logger.warning(
            f"Keeping original object ({outcome.value})",
            log_context.with_metadata(error=str(error)),
        )
        return ReplacementResult(original=ref, ref=ref, outcome=outcome, error=str(error))


def _copy_values(upload: UploadResult) -> Dict[str, List[str]]:
    return {name: list(values) for name, values in upload.other.items()}


def _report_failure(
    batch_manager: BatchOperationContextManager,
    field_name: str,
    index: int,
    result: ReplacementResult,
) -> None:
    if result.error:
        batch_manager.add_error(
            item_identifier=f"{field_name}[{index}] {result.original.key}",
            error_message=f"{result.outcome.value}: {result.error}",
        )


class SerialBatchProcessor(BatchProcessor):
    """Serial batch processor: one object after the other, in upload order."""

    def __init__(self, replacer: ReplacementService, logger: LoggerProtocol):
        self._replacer = replacer
        self._logger = logger
        self.last_results: List[ReplacementResult] = []

    def process(
        self, upload: UploadResult, options: CompressionOptions
    ) -> UploadResult:
        """Process every stored object serially, returning a new upload result."""
        results: List[ReplacementResult] = []
        blobs: Dict[str, List[StoredObjectRef]] = {}

        with BatchOperationContextManager("Serial upload optimization") as batch_manager:
            for field_name, refs in upload.blobs.items():
                processed_refs = []
                for index, ref in enumerate(refs):
                    result = self._replacer.replace_with_outcome(ref, options)
                    _report_failure(batch_manager, field_name, index, result)
                    results.append(result)
                    processed_refs.append(result.ref)
                blobs[field_name] = processed_refs

        self.last_results = results
        return UploadResult(blobs=blobs, other=_copy_values(upload))


class ThreadedBatchProcessor(BatchProcessor):
    """Batch processor using a thread pool, one task per object slot."""

    def __init__(
        self,
        replacer: ReplacementService,
        logger: LoggerProtocol,
        max_workers: int = 8,
    ):
        self._replacer = replacer
        self._logger = logger
        self._max_workers = max_workers
        self.last_results: List[ReplacementResult] = []

    def process(
        self, upload: UploadResult, options: CompressionOptions
    ) -> UploadResult:
        """Process every stored object concurrently, returning a new upload result."""
        # Private copy; each task owns exactly one (field, index) slot
        blobs: Dict[str, List[StoredObjectRef]] = {
            field_name: list(refs) for field_name, refs in upload.blobs.items()
        }
        slots: List[Tuple[str, int]] = [
            (field_name, index)
            for field_name, refs in blobs.items()
            for index in range(len(refs))
        ]
        results_by_slot: Dict[Tuple[str, int], ReplacementResult] = {}

        with BatchOperationContextManager("Threaded upload optimization") as batch_manager:
            if slots:
                max_workers = min(self._max_workers, len(slots))
                with ThreadPoolExecutor(max_workers=max_workers) as executor:
                    future_to_slot = {
                        executor.submit(
                            self._replacer.replace_with_outcome,
                            blobs[field_name][index],
                            options,
                        ): (field_name, index)
                        for field_name, index in slots
                    }

                    for future in as_completed(future_to_slot):
                        field_name, index = future_to_slot[future]
                        try:
                            result = future.result()
                        except Exception as e:
                            # Slot keeps its original ref
                            batch_manager.add_error(
                                item_identifier=f"{field_name}[{index}] "
                                f"{blobs[field_name][index].key}",
                                error_message=str(e),
                            )
                            continue
                        _report_failure(batch_manager, field_name, index, result)
                        results_by_slot[(field_name, index)] = result
                        blobs[field_name][index] = result.ref

        self.last_results = [results_by_slot[s] for s in slots if s in results_by_slot]
        return UploadResult(blobs=blobs, other=_copy_values(upload))


class ManifestUploadParser:
    """Upload parser resolving a manifest of already stored object keys."""

    def __init__(self, store: ObjectStoreProtocol, logger: LoggerProtocol):
        self._store = store
        self._logger = logger

    def parse(self, request: Any) -> UploadResult:
        """
        Resolve every key listed in the request through the object store.

        Args:
            request: UploadManifest, mapping or JSON document

        Returns:
            UploadResult with refs in manifest order

        Raises:
            UpstreamParseError: If the manifest is invalid or a key cannot be resolved
        """
        manifest = self._load_manifest(request)

        blobs: Dict[str, List[StoredObjectRef]] = {}
        for field_name, keys in manifest.blobs.items():
            refs = []
            for key in keys:
                try:
                    refs.append(self._store.stat(key))
                except Exception as e:
                    raise UpstreamParseError(
                        f"Uploaded object '{key}' in field '{field_name}' "
                        f"could not be resolved: {e}"
                    ) from e
            blobs[field_name] = refs

        self._logger.debug(
            f"Parsed upload manifest with {sum(len(r) for r in blobs.values())} "
            f"object(s) in {len(blobs)} field(s)"
        )
        return UploadResult(
            blobs=blobs,
            other={name: list(values) for name, values in manifest.values.items()},
        )

    @staticmethod
    def _load_manifest(request: Any) -> UploadManifest:
        if isinstance(request, UploadManifest):
            return request
        try:
            if isinstance(request, (str, bytes)):
                return UploadManifest.model_validate_json(request)
            return UploadManifest.model_validate(request)
        except ValidationError as e:
            raise UpstreamParseError(f"Invalid upload manifest: {e}") from e


class UploadOptimizer:
    """Parse an upload and optimize every stored image in it."""

    def __init__(
        self,
        parser: UploadParserProtocol,
        batch_processor: BatchProcessor,
        logger: LoggerProtocol,
    ):
        self._parser = parser
        self._batch_processor = batch_processor
        self._logger = logger

    def parse_blobs(self, options: CompressionOptions) -> UploadResult:
        """
        Parse the request bound to the options and optimize its images.

        Parser failures propagate unchanged, before any object is touched.
        """
        upload = self._parser.parse(options.request)

        object_count = sum(len(refs) for refs in upload.blobs.values())
        self._logger.info(
            f"Optimizing {object_count} object(s) in {len(upload.blobs)} field(s) "
            f"(quality={options.quality}, max_dimension={options.max_dimension})"
        )
        return self._batch_processor.process(upload, options)
