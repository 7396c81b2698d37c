"""
Output handling for the segmentation overlay pipeline.

Responsibility:
    Route segmentation results to configured output sinks:
    display window, saved images, video files, JSON, or CSV.
    Supports multiple orthogonal outputs simultaneously.

Non-goals:
    - No segmentation logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Set

import cv2
import numpy as np

from segoverlay.config import AppConfig, get_project_root
from segoverlay.detection import Segmentation
from segoverlay.labels import LabelTable
from segoverlay.serializer import save_csv, save_json
from segoverlay.visualizer import draw_segmentations, show_frame

logger = logging.getLogger(__name__)


class OutputHandler:
    """Routes segmentation results to configured output sinks.

    Supports orthogonal outputs - multiple modes can be active simultaneously:
        - 'display': Show annotated frames in an OpenCV window.
        - 'save_image': Write annotated image/frames to files.
        - 'save_video': Write annotated frames to a video file.
        - 'save_json': Accumulate results, write JSON on finalize.
        - 'save_csv': Accumulate results, write CSV on finalize.

    Usage:
        handler = OutputHandler(config, labels)
        handler.process_frame(frame_id, frame, segmentations)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig, labels: Optional[LabelTable] = None) -> None:
        """Initialize the output handler.

        Args:
            config: Application configuration (output mode, paths, vis params).
            labels: Class name lookup. Defaults to an empty table.
        """
        self._config = config
        self._labels = labels if labels is not None else LabelTable()
        self._video_writer: Optional[cv2.VideoWriter] = None

        # Parse output modes (comma-separated for multiple outputs)
        mode_str = config.output.mode
        self._modes: Set[str] = set(m.strip() for m in mode_str.split(','))

        # Buffer for serialization modes
        self._results_buffer: Dict[int, List[Segmentation]] = {}

        # Resolve output path
        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        # Create output directory if saving files
        if self._modes & {'save_image', 'save_video', 'save_json', 'save_csv'}:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    def process_frame(
        self,
        frame_id: int,
        frame: np.ndarray,
        segmentations: List[Segmentation],
    ) -> bool:
        """Process a single frame's results through the output pipeline.

        Args:
            frame_id: Frame index.
            frame: Original BGR frame (the display surface).
            segmentations: Results for this frame, in frame coordinates.

        Returns:
            True to continue processing, False to signal the caller
            should stop (e.g., user pressed 'q' in display mode).
        """
        should_continue = True
        vis = self._config.visualization

        if 'display' in self._modes:
            key = show_frame(frame, segmentations, self._labels, vis)
            if key == ord("q") or key == 27:  # 'q' or ESC
                logger.info("Quit signal received (key press).")
                should_continue = False

        needs_annotation = self._modes & {'save_image', 'save_video'}
        if needs_annotation:
            annotated = draw_segmentations(frame, segmentations, self._labels, vis)
            if 'save_image' in self._modes:
                self._handle_save_image(frame_id, annotated)
            if 'save_video' in self._modes:
                self._handle_save_video(annotated)

        # Buffer for JSON/CSV
        if 'save_json' in self._modes or 'save_csv' in self._modes:
            self._results_buffer[frame_id] = segmentations

        return should_continue

    def _handle_save_image(self, frame_id: int, annotated: np.ndarray) -> None:
        """Save annotated frame as an image file."""
        output_file = self._save_path / f"frame_{frame_id:06d}.jpg"
        cv2.imwrite(str(output_file), annotated)
        logger.debug("Saved frame %d to %s", frame_id, output_file)

    def _handle_save_video(self, annotated: np.ndarray) -> None:
        """Write annotated frame to the video writer."""
        if self._video_writer is None:
            output_file = str(self._save_path / "output.avi")
            h, w = annotated.shape[:2]
            fourcc = cv2.VideoWriter_fourcc(*"XVID")
            self._video_writer = cv2.VideoWriter(output_file, fourcc, 20.0, (w, h))
            logger.info("Video writer opened: %s (%dx%d)", output_file, w, h)

        self._video_writer.write(annotated)

    def finalize(self) -> None:
        """Flush buffered output and release resources.

        Must be called after all frames have been processed.
        """
        if 'save_json' in self._modes and self._results_buffer:
            output_file = str(self._save_path / "segmentations.json")
            save_json(self._results_buffer, output_file, self._labels)

        if 'save_csv' in self._modes and self._results_buffer:
            output_file = str(self._save_path / "segmentations.csv")
            save_csv(self._results_buffer, output_file, self._labels)

        if self._video_writer is not None:
            self._video_writer.release()
            self._video_writer = None
            logger.info("Video writer released.")

        if 'display' in self._modes:
            cv2.destroyAllWindows()

        self._results_buffer.clear()
        logger.info("OutputHandler finalized.")
