import argparse
import signal
import sys
from tt.app import Tracker
from tt.common.logger import log
from tt.util.misc import format_duration, format_duration_short


def _print_totals(totals, grand_total_ms):
    if not totals:
        print("No entries yet today.")
        return
    width = max(len(total.category) for total in totals)
    for total in totals:
        print(f"{total.category:<{width}}  {format_duration(total.duration_ms)}")
    print(f"{'Total':<{width}}  {format_duration(grand_total_ms)}")


def _print_saved(saved):
    if not saved:
        print("Nothing was logged.")
    for entry in saved:
        print(f"{entry.id}  {entry.category}  {format_duration(entry.duration_ms)}")


def _watch(tracker):
    from PySide6.QtCore import QCoreApplication
    from tt.core.ticker import TickLoop

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    # Let Ctrl+C end the event loop
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    loop = TickLoop(
        tracker.timer,
        on_tick=lambda elapsed_ms: print(f"\r{format_duration(elapsed_ms)}", end="", flush=True),
        interval_ms=tracker.settings.tick_interval_ms,
    )
    loop.sync()
    if not loop.active:
        print(f"Timer is {tracker.timer.phase}, nothing to watch.")
        return 0
    return app.exec()


def build_parser():
    parser = argparse.ArgumentParser(prog="tt", description="Log blocks of time against categories.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Show the stopwatch state")
    sub.add_parser("start", help="Start the stopwatch")
    sub.add_parser("pause", help="Pause the running stopwatch")
    sub.add_parser("resume", help="Resume the paused stopwatch")
    stop = sub.add_parser("stop", help="Stop the stopwatch and log its time")
    stop.add_argument("category")
    sub.add_parser("reset", help="Discard the stopwatch session")
    add = sub.add_parser("add", help="Log a block of minutes ending now")
    add.add_argument("category")
    add.add_argument("minutes")
    edit = sub.add_parser("edit", help="Change an entry's category or duration")
    edit.add_argument("entry_id")
    edit.add_argument("--category")
    edit.add_argument("--minutes")
    delete = sub.add_parser("delete", help="Delete an entry")
    delete.add_argument("entry_id")
    sub.add_parser("today", help="Show today's totals")
    sub.add_parser("history", help="Show totals for every day")
    sub.add_parser("watch", help="Follow the running stopwatch")
    return parser


def main(argv=None, tracker=None):
    args = build_parser().parse_args(argv)
    tracker = tracker or Tracker()
    tracker.init()

    if args.command == "status":
        print(f"{tracker.timer.phase}  {format_duration(tracker.timer.tick())}")
    elif args.command in ("start", "pause", "resume"):
        changed = getattr(tracker, args.command)()
        if not changed:
            print(f"Can't {args.command} while {tracker.timer.phase}.")
            return 1
        print(f"{tracker.timer.phase}  {format_duration(tracker.timer.tick())}")
    elif args.command == "stop":
        if not args.category.strip():
            print("A category is required.")
            return 1
        if tracker.stop() is None:
            print("Timer isn't running.")
            return 1
        _print_saved(tracker.submit_category(args.category))
    elif args.command == "reset":
        tracker.reset()
        print("Timer reset.")
    elif args.command == "add":
        saved = tracker.add_manual_entry(args.category, args.minutes)
        _print_saved(saved)
        if not saved:
            return 1
    elif args.command == "edit":
        if tracker.edit_entry(args.entry_id, args.category, args.minutes) is None:
            print("Entry not changed.")
            return 1
        print("Entry updated.")
    elif args.command == "delete":
        tracker.delete_entry(args.entry_id)
        print("Entry deleted.")
    elif args.command == "today":
        _print_totals(*tracker.refresh())
    elif args.command == "history":
        tracker.refresh()
        for day in tracker.history():
            print(f"{day.day}  {format_duration_short(day.total_ms)}")
            for total in day.categories:
                print(f"    {total.category}  {format_duration_short(total.duration_ms)}")
    elif args.command == "watch":
        return _watch(tracker)
    return 0


# Entry point for `python -m tt`
def run() -> None:
    try:
        sys.exit(main())
    except SystemExit:
        raise
    except Exception:
        # Full stack trace, always
        log.exception("Uncaught exception in entrypoint, exiting")
        sys.exit(1)

if __name__ == "__main__":
    run()
