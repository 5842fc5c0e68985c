import argparse
import configparser
import sys
from typing import Dict, List, Optional

from loguru import logger

import mark_codec
from models import EditorConfig
from video_engine import FilterGraphBuilder, count_restarts, format_mark_list, plan_export


def read_config(path: Optional[str]) -> Dict[str, str]:
    """Flattens an INI file into 'section.key' settings."""
    values: Dict[str, str] = {}
    if not path:
        return values
    parser = configparser.ConfigParser()
    if not parser.read(path):
        logger.warning(f"Config file not found: {path}")
        return values
    for section in parser.sections():
        for key, value in parser.items(section):
            values[f"{section}.{key}"] = value
    return values


def configure_logging(verbose: bool):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def run_editor(args) -> int:
    from PyQt6.QtWidgets import QApplication
    from main_window import MarkEditorWindow

    config = EditorConfig.from_mapping(read_config(args.config))
    config.incremental_repair = args.incremental

    app = QApplication(sys.argv[:1])
    app.setStyle("Fusion")

    marks_in = args.marks or f"{args.media}.mark"
    window = MarkEditorWindow(args.media, marks_in, args.out, config)
    window.show()

    return app.exec()


def run_filter(args) -> int:
    values = read_config(args.config)
    for option, key in (("fflen", "marktofilter.fflen"),
                        ("minffspeed", "marktofilter.minffspeed"),
                        ("maxffpitch", "marktofilter.maxffpitch")):
        if getattr(args, option) is not None:
            values[key] = getattr(args, option)
    config = EditorConfig.from_mapping(values)
    config.fps = args.fps
    config.audio_rate = args.arate

    marks = mark_codec.load_marks(args.in_file)

    if args.count_restarts:
        output = f"{count_restarts(marks)}\n"
    elif args.audio or args.video:
        ff_audio = "discard" if args.audio_discard else "keep" if args.audio_keep else "speedup"
        segments, _ = plan_export(marks, config, args.restart)
        try:
            parts, _, _ = FilterGraphBuilder(config, ff_audio).build(segments, args.video, args.audio)
        except ValueError as e:
            logger.error(str(e))
            return 1
        output = ";\n".join(parts) + "\n"
    else:
        _, mutes = plan_export(marks, config, args.restart)
        output = format_mark_list(mutes)

    if args.out_file:
        try:
            with open(args.out_file, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError as e:
            logger.error(f"{args.out_file}: {e}")
            return 1
    else:
        sys.stdout.write(output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Mark a recording for cutting and turn the marks into ffmpeg filters.")
    ap.add_argument("--verbose", action="store_true", help="Log debug traces of every edit.")
    sub = ap.add_subparsers(dest="command", required=True)

    edit = sub.add_parser("edit", help="Open the mark editor on a recording.")
    edit.add_argument("media", type=str, help="Recording to play.")
    edit.add_argument("--marks", type=str, default="", help="Mark file to load (default: MEDIA.mark).")
    edit.add_argument("--out", type=str, default=None, help="Mark file to save to (default: the loaded one).")
    edit.add_argument("-c", "--config", type=str, default="", help="INI config with a [marktofilter] section.")
    edit.add_argument("--incremental", action="store_true", help="Repair only around each edit.")
    edit.set_defaults(func=run_editor)

    flt = sub.add_parser("filter", help="Print the filter graph, restart count or mute list for a mark file.")
    flt.add_argument("-i", "--in-file", type=str, default="out.mark", help="Mark file to read.")
    flt.add_argument("-o", "--out-file", type=str, default="", help="Write here instead of stdout.")
    flt.add_argument("-a", "--audio", type=str, default=None, help="Audio input label, e.g. 0:a.")
    flt.add_argument("-v", "--video", type=str, default=None, help="Video input label, e.g. 0:v.")
    flt.add_argument("--count-restarts", action="store_true", help="Print the number of resets.")
    flt.add_argument("-r", "--chosen-restart", dest="restart", type=int, default=1,
                     help="Which restart to render, counting from 1.")
    flt.add_argument("-k", "--audio-keep", action="store_true", help="Keep fast-forward audio at normal speed.")
    flt.add_argument("--audio-discard", action="store_true", help="Silence fast-forward audio.")
    flt.add_argument("-c", "--config", type=str, default="", help="INI config with a [marktofilter] section.")
    flt.add_argument("--fps", type=int, default=30)
    flt.add_argument("--arate", type=int, default=48000)
    flt.add_argument("--fflen", type=float, default=None, help="Output length of a fast-forward chunk.")
    flt.add_argument("--minffspeed", type=float, default=None, help="Slowest fast-forward speed.")
    flt.add_argument("--maxffpitch", type=float, default=None, help="Highest audio pitch-up; below 1 is unlimited.")
    flt.set_defaults(func=run_filter)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the application."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
