import customtkinter as ctk
import tkinter as tk
from typing import Any, Dict, List, Optional
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg, NavigationToolbar2Tk
import numpy as np

# Claves de op_traces que se grafican directo (etiqueta del eje Y)
TIMESERIES_PLOTS = {
    "heap_size": "Tamaño del Heap (B)",
    "largest_free": "Mayor Partición Libre (B)",
    "pages_requested": "Páginas Solicitadas",
    "external_frag_pct": "Frag. Externa (%)",
}

LATENCY_WINDOWS = [20, 50, 100]
MAX_POINTS = 2000


def downsample_step(n: int) -> int:
    return 1 if n <= MAX_POINTS else n // (MAX_POINTS // 2)


def moving_average(values: List[float], window: int) -> np.ndarray:
    """Media móvil en modo 'valid' (vacía si hay menos puntos que la ventana)."""
    data = np.asarray(values, dtype=float)
    if window <= 0 or len(data) < window:
        return np.array([])
    return np.convolve(data, np.ones(window) / window, mode="valid")


class ChartsView(ctk.CTkFrame):
    """
    Gráficos de las trazas por pedido (op_traces).
    """
    def __init__(self, master, palette: Dict[str, str], **kwargs):
        super().__init__(master, **kwargs)
        self.palette = palette
        self.configure(fg_color="transparent")
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._traces: List[Dict[str, Any]] = []
        self._chart_widgets: Dict[str, Dict[str, Any]] = {}

        controls = ctk.CTkFrame(self, fg_color="transparent")
        controls.grid(row=0, column=0, sticky="ew", padx=10, pady=(0, 10))
        ctk.CTkLabel(controls, text="Ventana de latencia (pedidos):", text_color=self.palette["text_light"]).pack(side="left", padx=(0, 10))
        self.window_var = ctk.StringVar(value=str(LATENCY_WINDOWS[1]))
        self.window_combo = ctk.CTkComboBox(
            controls, variable=self.window_var, values=[str(w) for w in LATENCY_WINDOWS],
            state="disabled", command=self._redraw_charts, width=80,
            fg_color=self.palette["button"], button_color=self.palette["button"],
            border_color=self.palette["button"], text_color=self.palette["text_on_button"],
        )
        self.window_combo.pack(side="left")

        self.tab_view = ctk.CTkTabview(
            self, fg_color=self.palette["frame_bg"],
            segmented_button_selected_color=self.palette["button"],
            segmented_button_selected_hover_color=self.palette["button_hover"],
            text_color=self.palette["text_light"],
        )
        self.tab_view.grid(row=1, column=0, sticky="nsew", padx=10, pady=10)
        self._create_placeholder_tab("Esperando datos...")

    def _create_placeholder_tab(self, text: str):
        tab = self.tab_view.add("Info")
        ctk.CTkLabel(tab, text=text, text_color=self.palette["text_light"], font=ctk.CTkFont(size=16)).pack(padx=20, pady=20)

    def _clear_tabs(self):
        for name in list(self.tab_view._name_list):
            self.tab_view.delete(name)
        for widgets in self._chart_widgets.values():
            plt.close(widgets["fig"])
        self._chart_widgets = {}

    def _style_axes(self, ax):
        ax.set_facecolor(self.palette["app_bg"])
        ax.tick_params(axis="x", colors=self.palette["text_light"])
        ax.tick_params(axis="y", colors=self.palette["text_light"])
        for side in ("bottom", "left"):
            ax.spines[side].set_color(self.palette["text_light"])
        for side in ("top", "right"):
            ax.spines[side].set_color(self.palette["frame_bg"])

    def _create_chart_tabs(self):
        self._clear_tabs()
        if not self._traces:
            self._create_placeholder_tab("No hay trazas para esta simulación.")
            return

        for key in list(TIMESERIES_PLOTS.keys()) + ["cumulative_merges", "latency"]:
            tab = self.tab_view.add(key.replace("_", " ").title())
            fig = Figure(figsize=(8, 4), dpi=100, facecolor=self.palette["frame_bg"])
            ax = fig.add_subplot(111)
            self._style_axes(ax)
            fig.subplots_adjust(left=0.1, right=0.95, top=0.9, bottom=0.15)

            canvas = FigureCanvasTkAgg(fig, master=tab)
            canvas.get_tk_widget().pack(side=tk.TOP, fill=tk.BOTH, expand=True)
            toolbar_frame = ctk.CTkFrame(tab, fg_color="transparent")
            toolbar_frame.pack(side=tk.BOTTOM, fill=tk.X)
            toolbar = NavigationToolbar2Tk(canvas, toolbar_frame, pack_toolbar=False)
            toolbar.pack(side=tk.LEFT, padx=10)

            self._chart_widgets[key] = {"fig": fig, "ax": ax, "canvas": canvas}

    def _finish(self, ax, canvas, title: str, ylabel: str):
        ax.set_title(title, color=self.palette["text_light"])
        ax.set_xlabel("Índice de Pedido", color=self.palette["text_light"])
        ax.set_ylabel(ylabel, color=self.palette["text_light"])
        ax.grid(True, linestyle="--", alpha=0.3, color=self.palette["text_light"])
        canvas.draw()

    def _plot_timeseries(self, key: str, ax, canvas):
        x = [t.get("op_index", i) for i, t in enumerate(self._traces)]
        y = [t.get(key, 0) for t in self._traces]
        step = downsample_step(len(x))
        ax.clear()
        ax.plot(x[::step], y[::step], color=self.palette["button_hover"], linewidth=1.5)
        label = TIMESERIES_PLOTS[key]
        self._finish(ax, canvas, label, label)

    def _plot_cumulative_merges(self, ax, canvas):
        x = np.array([t.get("op_index", i) for i, t in enumerate(self._traces)])
        y = np.cumsum([t.get("merges", 0) for t in self._traces])
        step = downsample_step(len(x))
        ax.clear()
        ax.plot(x[::step], y[::step], color=self.palette["button_hover"], linewidth=1.5)
        self._finish(ax, canvas, "Fusiones (Acumulado)", "Total Fusiones")

    def _plot_latency(self, ax, canvas):
        try:
            window = int(self.window_var.get())
        except ValueError:
            window = LATENCY_WINDOWS[1]
        avg = moving_average([t.get("access_time_ms", 0.0) for t in self._traces], window)
        ax.clear()
        if len(avg):
            x = np.arange(window - 1, window - 1 + len(avg))
            step = downsample_step(len(x))
            ax.plot(x[::step], avg[::step], color=self.palette["button_hover"], linewidth=1.5)
        else:
            ax.text(0.5, 0.5, "Datos insuficientes para la ventana", ha="center", va="center", color=self.palette["text_light"])
        ax.set_ylim(bottom=0)
        self._finish(ax, canvas, f"Latencia (ms, Ventana Móvil={window})", "ms")

    def _redraw_charts(self, *args):
        if not self._traces:
            return
        for key, widgets in self._chart_widgets.items():
            if key in TIMESERIES_PLOTS:
                self._plot_timeseries(key, widgets["ax"], widgets["canvas"])
            elif key == "cumulative_merges":
                self._plot_cumulative_merges(widgets["ax"], widgets["canvas"])
            elif key == "latency":
                self._plot_latency(widgets["ax"], widgets["canvas"])

    def update_charts(self, summary: Optional[Dict[str, Any]]):
        """Punto de entrada: recibe el summary (con op_traces) y redibuja."""
        self._traces = []
        if not summary or "error" in summary:
            self._clear_tabs()
            self.window_combo.configure(state="disabled")
            msg = summary.get("error", "No se recibieron resultados.") if summary else "No se recibieron resultados."
            self._create_placeholder_tab(f"Error en la simulación:\n{msg}")
            return

        self._traces = summary.get("op_traces", [])
        self.window_combo.configure(state="normal")
        self._create_chart_tabs()
        self._redraw_charts()
