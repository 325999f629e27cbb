import customtkinter as ctk
from typing import Any, Dict, List, Optional, Tuple

from .scenario_view import ScenarioView
from .results_view import ResultsView
from .heap_view import HeapView
from .charts_view import ChartsView


class MainView(ctk.CTkFrame):
    """
    Vista principal: sidebar de navegación + vistas de página.
    """
    def __init__(self, master, palette: Dict[str, str], **kwargs):
        super().__init__(master, **kwargs)
        self.palette = palette

        self.configure(fg_color="transparent")
        self.grid_columnconfigure(1, weight=1)
        self.grid_rowconfigure(0, weight=1)

        self.sidebar_frame = ctk.CTkFrame(self, width=200, corner_radius=10, fg_color=self.palette["frame_bg"])
        self.sidebar_frame.grid(row=0, column=0, sticky="nsw", padx=(0, 10))
        self.sidebar_frame.grid_rowconfigure(5, weight=1)

        self.logo_label = ctk.CTkLabel(
            self.sidebar_frame, text="WFSim",
            font=ctk.CTkFont(size=20, weight="bold"),
            text_color=self.palette["text_light"]
        )
        self.logo_label.grid(row=0, column=0, padx=20, pady=(20, 10))

        button_style = {
            "fg_color": self.palette["button"],
            "hover_color": self.palette["button_hover"],
            "text_color": self.palette["text_on_button"]
        }
        for row, (name, text) in enumerate(
            [("scenario", "Escenario"), ("results", "Resultados"), ("heap", "Heap"), ("charts", "Gráficos")],
            start=1,
        ):
            button = ctk.CTkButton(
                self.sidebar_frame, text=text,
                command=lambda n=name: self.select_frame(n), **button_style
            )
            button.grid(row=row, column=0, padx=20, pady=10)

        self.main_content_frame = ctk.CTkFrame(self, corner_radius=10, fg_color=self.palette["frame_bg"])
        self.main_content_frame.grid(row=0, column=1, sticky="nsew")
        self.main_content_frame.grid_columnconfigure(0, weight=1)
        self.main_content_frame.grid_rowconfigure(0, weight=1)

        self.results_view = ResultsView(self.main_content_frame, palette=self.palette, fg_color="transparent")
        self.heap_view = HeapView(self.main_content_frame, palette=self.palette, fg_color="transparent")
        self.charts_view = ChartsView(self.main_content_frame, palette=self.palette, fg_color="transparent")
        self.scenario_view = ScenarioView(
            self.main_content_frame,
            on_run_start=lambda: self.select_frame("heap"),
            on_run_complete=self.on_simulation_complete,
            on_live_update=self.heap_view.live_update,
            palette=self.palette,
            fg_color="transparent"
        )

        self.frames = {
            "scenario": self.scenario_view,
            "results": self.results_view,
            "heap": self.heap_view,
            "charts": self.charts_view,
        }
        self.select_frame("scenario")

    def select_frame(self, name: str):
        for frame_name, frame in self.frames.items():
            if frame_name == name:
                frame.grid(row=0, column=0, sticky="nsew", padx=10, pady=10)
            else:
                frame.grid_forget()

    def on_simulation_complete(self, summary: Dict[str, Any], partitions: Optional[List[Tuple[int, int, int]]]):
        """Callback que ScenarioView invoca al terminar una simulación."""
        self.results_view.show_results(summary)
        self.heap_view.show_final_snapshot(partitions)
        self.charts_view.update_charts(summary)
        self.select_frame("results")
