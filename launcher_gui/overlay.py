import logging
import queue
import threading
import tkinter as tk
from tkinter import font as tkFont

from launcher_agent.catalog import Capability
from launcher_agent.session import SessionBusyError
from launcher_gui.rendering import render_execution, render_outcome

logger = logging.getLogger(__name__)


class LauncherWindow(tk.Tk):
    def __init__(self, session, gui_queue=None):
        super().__init__()
        self.session = session
        self.gui_queue = gui_queue or queue.Queue()
        self.items = []
        self.pending_script = None

        self.title("Launcher")
        self.wm_attributes("-topmost", True)
        self.geometry("600x400")
        self.config(bg="#1e1e1e")

        self.border_color_idle = "#6E6E6E"
        self.border_color_thinking = "#FF8C00"
        self.border_color_confirm = "#E74C3C"

        self.main_font = tkFont.Font(family="Arial", size=16)
        self.status_font = tkFont.Font(family="Arial", size=11)

        self.top_border = tk.Frame(self, bg=self.border_color_idle, height=4)
        self.top_border.pack(side="top", fill="x")

        self.query_entry = tk.Entry(self, font=self.main_font, bg="#2d2d2d", fg="white", insertbackground="white")
        self.query_entry.pack(fill="x", padx=10, pady=(10, 4))
        self.query_entry.bind("<Return>", self.on_submit)
        self.query_entry.focus_set()

        self.status_label = tk.Label(self, text="", font=self.status_font, fg="#cccccc", bg="#1e1e1e", anchor="w")
        self.status_label.pack(fill="x", padx=10)

        self.confirm_frame = tk.Frame(self, bg="#3a1f1f")
        self.script_text = tk.Text(self.confirm_frame, height=6, bg="#2d2d2d", fg="white", insertbackground="white")
        self.script_text.pack(fill="x", padx=6, pady=6)
        tk.Button(self.confirm_frame, text="Run script", command=self.on_confirm).pack(side="left", padx=6, pady=(0, 6))
        tk.Button(self.confirm_frame, text="Cancel", command=self.on_cancel).pack(side="left", padx=6, pady=(0, 6))

        self.response_label = tk.Label(
            self, text="", font=self.status_font, fg="#AFEEEE", bg="#1e1e1e", justify="left", anchor="nw", wraplength=570
        )
        self.response_label.pack(fill="x", padx=10, pady=4)

        self.result_list = tk.Listbox(self, font=self.status_font, bg="#2d2d2d", fg="white", activestyle="none")
        self.result_list.pack(expand=True, fill="both", padx=10, pady=(0, 10))
        self.result_list.bind("<Double-Button-1>", self.on_item_open)
        self.result_list.bind("<Return>", self.on_item_open)

        self.bind("<Escape>", lambda event: self.withdraw())
        self.protocol("WM_DELETE_WINDOW", self.on_closing)

        self.run_in_background(lambda: self.session.run_capability(Capability.LIST_APPLICATIONS), status="Loading applications...")
        self.process_queue()

    def set_border_color(self, color):
        self.top_border.config(bg=color)

    def set_busy(self, busy, status=""):
        self.query_entry.config(state="disabled" if busy else "normal")
        self.status_label.config(text=status)
        self.set_border_color(self.border_color_thinking if busy else self.border_color_idle)

    def run_in_background(self, work, status, render=render_outcome):
        self.set_busy(True, status)

        def worker():
            try:
                view = render(work())
            except SessionBusyError:
                view = {"view": "error", "text": "Still working on the previous request."}
            except Exception as e:
                logger.error("Background task failed.", exc_info=True)
                view = {"view": "error", "text": f"Error: {e}"}
            self.gui_queue.put(view)

        threading.Thread(target=worker, daemon=True).start()

    def on_submit(self, event=None):
        query = self.query_entry.get().strip()
        if not query:
            return
        self.hide_confirmation()
        self.run_in_background(lambda: self.session.submit_query(query), status="Thinking...")

    def on_item_open(self, event=None):
        selection = self.result_list.curselection()
        if not selection:
            return
        item = self.items[selection[0]]
        self.run_in_background(
            lambda: self.session.run_capability(Capability.OPEN_PATH, {"path": item["path"]}),
            status=f"Opening {item['name']}...",
        )

    def on_confirm(self):
        script = self.script_text.get("1.0", "end-1c")
        self.hide_confirmation()
        self.run_in_background(lambda: self.session.confirm_and_execute(script), status="Running script...", render=render_execution)

    def on_cancel(self):
        self.session.cancel_confirmation()
        self.hide_confirmation()
        self.response_label.config(text="Script discarded.")

    def show_confirmation(self, script):
        self.script_text.delete("1.0", "end")
        self.script_text.insert("1.0", script)
        self.confirm_frame.pack(fill="x", padx=10, pady=4, after=self.status_label)
        self.set_border_color(self.border_color_confirm)

    def hide_confirmation(self):
        self.confirm_frame.pack_forget()

    def show_items(self, items):
        self.items = list(items)
        self.result_list.delete(0, "end")
        for item in self.items:
            label = item["name"] if "running" not in item else f"{item['name']}{'  (running)' if item['running'] else ''}"
            self.result_list.insert("end", label)

    def apply_view(self, view):
        self.set_busy(False)
        kind = view["view"]
        if kind == "results":
            self.response_label.config(text="")
            if view["items"]:
                self.show_items(view["items"])
        elif kind == "confirm":
            self.response_label.config(text="The assistant wants to run this script:")
            self.show_confirmation(view["script"])
        else:
            self.response_label.config(text=view["text"])

    def on_closing(self):
        logger.info("Launcher window closed.")
        self.destroy()

    def process_queue(self):
        try:
            view = self.gui_queue.get_nowait()
            self.apply_view(view)
        except queue.Empty:
            pass
        finally:
            self.after(100, self.process_queue)
