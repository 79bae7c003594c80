"""LangGraph orchestration for the document ingestion pipeline.

This module implements the stateful graph that turns an uploaded document into
a stored analysis: download → extract → analyze → persist.

Nodes raise on failure; the caller (IngestionService) is responsible for
marking the document as errored.
"""

import logging
from typing import Any, TypedDict

import anyio
from langgraph.graph import END, StateGraph

from ..core.storage import ObjectStorage
from ..models.document import Document
from ..services.document_store import DocumentStore
from .analysis import AnalysisOutcome, AnalysisRequester, DocumentMetadata
from .extractor import ExtractionResult, TextExtractor

logger = logging.getLogger(__name__)


class IngestionState(TypedDict, total=False):
    """State dictionary that flows through the LangGraph nodes."""

    # Input
    document: Document

    # Intermediate state
    file_bytes: bytes
    extraction: ExtractionResult
    outcome: AnalysisOutcome

    # Output
    applied: bool


class IngestionNodes:
    """Graph nodes bound to the collaborators they need."""

    def __init__(
        self,
        storage: ObjectStorage,
        extractor: TextExtractor,
        requester: AnalysisRequester,
        store: DocumentStore,
    ):
        self.storage = storage
        self.extractor = extractor
        self.requester = requester
        self.store = store

    async def download_node(self, state: IngestionState) -> IngestionState:
        """
        Fetch the raw file from object storage.

        Raises:
            DownloadError: If the stored object cannot be read
        """
        document = state["document"]
        file_bytes = await self.storage.download(document.file_path)

        logger.debug(f"Downloaded {len(file_bytes)} bytes for document {document.id}")

        return {**state, "file_bytes": file_bytes}

    async def extract_node(self, state: IngestionState) -> IngestionState:
        """Extract text on a worker thread; never fails the pipeline."""
        document = state["document"]

        extraction = await anyio.to_thread.run_sync(
            self.extractor.run, state["file_bytes"], document.file_type, document.original_filename
        )

        logger.debug(
            f"Extracted {len(extraction.text)} characters from document {document.id} via {extraction.method}"
        )

        return {**state, "extraction": extraction}

    async def analyze_node(self, state: IngestionState) -> IngestionState:
        """
        Send the extracted text to the analysis requester.

        Raises:
            LLMServiceError: If the model call fails
        """
        document = state["document"]
        metadata = DocumentMetadata(
            title=document.title,
            filename=document.original_filename,
            file_type=document.file_type,
            file_size=document.file_size,
        )

        outcome = await self.requester.analyze(state["extraction"].text, metadata)

        return {**state, "outcome": outcome}

    async def persist_node(self, state: IngestionState) -> IngestionState:
        """Write status, text and analysis in one conditional update."""
        document = state["document"]

        applied = await self.store.update_analysis(
            document.id,
            state["extraction"].text,
            state["outcome"].analysis,
        )

        return {**state, "applied": applied}


def build_graph(nodes: IngestionNodes) -> Any:
    """
    Build and compile the LangGraph for document ingestion.

    Returns:
        Compiled LangGraph instance ready for execution
    """
    # Create state graph
    graph = StateGraph(IngestionState)

    # Add nodes
    graph.add_node("download", nodes.download_node)
    graph.add_node("extract", nodes.extract_node)
    graph.add_node("analyze", nodes.analyze_node)
    graph.add_node("persist", nodes.persist_node)

    # Set entry point
    graph.set_entry_point("download")

    # Define the flow
    graph.add_edge("download", "extract")
    graph.add_edge("extract", "analyze")
    graph.add_edge("analyze", "persist")
    graph.add_edge("persist", END)

    compiled_graph = graph.compile()

    logger.info("Ingestion graph compiled successfully")

    return compiled_graph
