"""
Segmentation Overlay CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire together
    the segmenter and I/O handlers, and run the main processing loop.

Usage:
    python main.py --source 0                          # Webcam
    python main.py --source images/                    # Directory of images
    python main.py --source https://example.com/a.jpg  # Remote image
    python main.py --source video.mp4 --output-mode save_video
    python main.py --config my_config.yaml

Frames are processed strictly one after another: the next frame is not
read until the previous one has been segmented and written out.

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import logging
import sys
import time

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from segoverlay.config import load_config, validate_config
from segoverlay.input_handler import InputHandler
from segoverlay.labels import load_labels
from segoverlay.output_handler import OutputHandler
from segoverlay.segmenter import Segmenter


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Segmentation Overlay — Production CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: '0' for webcam, image/video file, directory, or http(s) image URL.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Path to the ONNX segmentation model. Overrides config.",
    )
    parser.add_argument(
        "--labels",
        type=str,
        help="Path to a YAML/JSON class label file. Overrides config.",
    )
    parser.add_argument(
        "--score-threshold",
        type=float,
        help="Minimum class score (0.0 - 1.0, exclusive). Overrides config.",
    )
    parser.add_argument(
        "--iou-threshold",
        type=float,
        help="IoU threshold for non-maximum suppression. Overrides config.",
    )
    parser.add_argument(
        "--max-detections",
        type=int,
        help="Maximum instances kept per frame after suppression. Overrides config.",
    )
    parser.add_argument(
        "--no-masks",
        action="store_true",
        help="Skip mask reconstruction; draw boxes and labels only.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s). Use comma-separated values for multiple outputs: "
             "display, save_image, save_video, save_json, save_csv. "
             "Example: 'display,save_image,save_json'. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Path/directory for output artifacts. Overrides config.",
    )

    return parser.parse_args()


def main() -> int:
    """Main execution loop."""
    args = parse_args()

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = load_config(args.config)

        # Apply CLI overrides
        # We must use object.__setattr__ because the dataclasses are frozen
        overrides = [
            (args.source, config.input, "source"),
            (args.model, config.model, "model_path"),
            (args.labels, config.visualization, "labels_path"),
            (args.score_threshold, config.detection, "score_threshold"),
            (args.iou_threshold, config.detection, "iou_threshold"),
            (args.max_detections, config.detection, "max_detections"),
            (args.backend, config.model, "backend"),
            (args.output_mode, config.output, "mode"),
            (args.output_path, config.output, "save_path"),
        ]
        for value, section, key in overrides:
            if value is not None:
                object.__setattr__(section, key, value)

        if args.no_masks:
            object.__setattr__(config.mask, "enabled", False)

        # Overrides bypass load_config, so check the final values again
        validate_config(config)

        labels = load_labels(config.visualization.labels_path)
        logger.info("Configuration active for this run.")

    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        segmenter = Segmenter(config)
        input_handler = InputHandler(
            source=config.input.source,
            resize_width=config.input.resize_width,
        )
        output_handler = OutputHandler(config, labels)

    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected initialization error: %s", e)
        return 1

    # 3. Processing Loop
    logger.info("Starting processing loop. Press 'q' or ESC to quit in display mode.")

    frame_count = 0
    start_time = time.perf_counter()

    try:
        for frame_id, frame in input_handler:
            frame_count += 1

            # Segment
            segmentations = segmenter.segment(frame)

            if segmentations:
                logger.debug("Frame %d: %d instances", frame_id, len(segmentations))

            # log occasional progress
            if frame_count % 30 == 0:
                logger.info("Processed %d frames...", frame_count)

            # Output
            # process_frame returns False on exit request (e.g. 'q' key)
            should_continue = output_handler.process_frame(frame_id, frame, segmentations)
            if not should_continue:
                logger.info("Stopping loop per user request.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        fps = frame_count / elapsed if elapsed > 0 else 0.0

        input_handler.release()
        output_handler.finalize()

        logger.info(
            "Processing finished. Total frames: %d. Avg FPS: %.2f.",
            frame_count, fps
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
