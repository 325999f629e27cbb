import customtkinter as ctk
from tkinter import ttk
import tkinter as tk
from customtkinter import filedialog
import csv
from typing import Any, Dict, List, Optional

from ..sim.runner import export_summary

METRIC_NAMES_ES = {
    "page_size": "Tamaño de Página (B)",
    "n_pages_requested": "Páginas Solicitadas",
    "max_free_partition_size": "Mayor Partición Libre (B)",
    "max_free_partition_address": "Dirección de la Mayor Libre",
    "peak_heap_size": "Pico de Heap (B)",
    "avg_access_time_ms": "Tiempo Promedio por Pedido (ms)",
    "throughput_ops_per_sec": "Pedidos por Segundo",
    "space_usage_pct": "Uso de Espacio (%)",
    "fragmentation_external_pct": "Fragmentación Externa (%)",
    "hit_ratio_pct": "Pedidos Aceptados (%)",
    "growth_count": "Crecimientos del Heap",
    "split_count": "Particiones Divididas",
    "merge_count": "Fusiones",
    "latency_spread_pct": "Dispersión de Tiempos (%)",
    "cpu_usage_pct": "Uso de CPU (%)",
    "elapsed_ms_total": "Tiempo Total de Simulación (ms)",
    "cpu_time_total_s": "Tiempo Total de CPU (s)",
    "ops_count": "Total de Pedidos",
}
KEYS_TO_IGNORE = ["_basic", "_scenario", "_seed", "tags_manifest", "op_traces"]
MANIFEST_COLUMNS = {"tag": "Tag", "allocations": "Reservas", "bytes": "Bytes", "alive": "Estado"}


class ResultsView(ctk.CTkFrame):
    """
    Vista de resultados: tarjeta de métricas + tabla de tags + exportación.
    """
    def __init__(self, master, palette: Dict[str, str], **kwargs):
        super().__init__(master, **kwargs)
        self.palette = palette
        self.configure(fg_color="transparent")
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)
        self.grid_rowconfigure(3, weight=2)

        ctk.CTkLabel(
            self, text="Resultados de la Simulación",
            font=ctk.CTkFont(size=20, weight="bold"), text_color=self.palette["text_light"]
        ).grid(row=0, column=0, padx=20, pady=(0, 10), sticky="w")
        self.metrics_frame = ctk.CTkScrollableFrame(self, fg_color="transparent")
        self.metrics_frame.grid(row=1, column=0, sticky="nsew")
        self.metrics_frame.grid_columnconfigure(0, weight=1)

        title_frame = ctk.CTkFrame(self, fg_color="transparent")
        title_frame.grid(row=2, column=0, sticky="ew", padx=20, pady=(15, 5))
        title_frame.grid_columnconfigure(0, weight=1)
        self.manifest_label = ctk.CTkLabel(
            title_frame, text="Manifiesto de Tags",
            font=ctk.CTkFont(size=18, weight="bold"), text_color=self.palette["text_light"]
        )
        self.manifest_label.grid(row=0, column=0, sticky="w")

        button_style = {
            "fg_color": self.palette["button"], "hover_color": self.palette["button_hover"],
            "text_color": self.palette["text_on_button"], "width": 200,
        }
        self.export_json_button = ctk.CTkButton(title_frame, text="Exportar resultados (JSON)", command=self._export_results_json, state="disabled", **button_style)
        self.export_json_button.grid(row=0, column=2, padx=(5, 0))
        self.export_csv_button = ctk.CTkButton(title_frame, text="Exportar manifiesto (CSV)", command=self._export_manifest_csv, state="disabled", **button_style)
        self.export_csv_button.grid(row=0, column=1)

        table_frame = ctk.CTkFrame(self, fg_color=self.palette["app_bg"])
        table_frame.grid(row=3, column=0, sticky="nsew", padx=10, pady=10)
        table_frame.grid_rowconfigure(0, weight=1)
        table_frame.grid_columnconfigure(0, weight=1)

        style = ttk.Style()
        style.theme_use("clam")
        style.configure("Treeview", background=self.palette["app_bg"], foreground=self.palette["text_light"],
                        fieldbackground=self.palette["app_bg"], rowheight=25)
        style.configure("Treeview.Heading", background=self.palette["button"], foreground=self.palette["text_on_button"], relief="flat")
        self.tree = ttk.Treeview(table_frame, columns=list(MANIFEST_COLUMNS.keys()), show="headings")
        for key, header_text in MANIFEST_COLUMNS.items():
            self.tree.heading(key, text=header_text, anchor=tk.W)
            self.tree.column(key, anchor=tk.E if key != "alive" else tk.CENTER, width=120)
        vsb = ttk.Scrollbar(table_frame, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")

        self._current_manifest: List[Dict[str, Any]] = []
        self._current_summary: Optional[Dict[str, Any]] = None
        self._show_message("Ejecuta una simulación...")

    def _clear_results(self):
        for widget in list(self.metrics_frame.winfo_children()):
            widget.destroy()
        for item in self.tree.get_children():
            self.tree.delete(item)
        self._current_manifest = []
        self._current_summary = None
        self.export_csv_button.configure(state="disabled")
        self.export_json_button.configure(state="disabled")

    def _show_message(self, text: str, color: Optional[str] = None):
        self._clear_results()
        ctk.CTkLabel(self.metrics_frame, text=text, text_color=color or self.palette["text_light"]).grid(row=0, column=0, padx=20, pady=20)

    def _add_metric_row(self, master_frame, key: str, value: Any):
        display_value = f"{value:.3f}" if isinstance(value, float) else str(value)
        row_frame = ctk.CTkFrame(master_frame, fg_color="transparent")
        row_frame.pack(fill="x", padx=10, pady=1)
        row_frame.grid_columnconfigure(0, weight=1)
        row_frame.grid_columnconfigure(1, weight=1)
        ctk.CTkLabel(row_frame, text=f"{METRIC_NAMES_ES.get(key, key)}:", anchor="w", text_color=self.palette["text_light"]).grid(row=0, column=0, sticky="w")
        ctk.CTkLabel(row_frame, text=display_value, anchor="e", text_color=self.palette["text_light"], font=ctk.CTkFont(weight="bold")).grid(row=0, column=1, sticky="e")

    def _populate_manifest_table(self, manifest: List[Dict[str, Any]]):
        self._current_manifest = manifest
        for info in manifest:
            values = [info.get(k, "-") for k in MANIFEST_COLUMNS]
            values[-1] = "Vivo" if info.get("alive") else "Liberado"
            self.tree.insert("", tk.END, values=values)
        self.manifest_label.configure(text=f"Manifiesto de Tags ({len(manifest)} total)")
        self.export_csv_button.configure(state="normal" if manifest else "disabled")

    def _export_manifest_csv(self):
        if not self._current_manifest:
            return
        filepath = filedialog.asksaveasfilename(title="Guardar Manifiesto como CSV", defaultextension=".csv",
                                                filetypes=[("CSV", "*.csv"), ("Todos", "*.*")])
        if not filepath:
            return
        try:
            with open(filepath, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=list(MANIFEST_COLUMNS.keys()), extrasaction="ignore")
                writer.writeheader()
                writer.writerows(self._current_manifest)
            print(f"Manifiesto exportado a {filepath}")
        except OSError as e:
            print(f"Error al exportar CSV: {e}")

    def _export_results_json(self):
        if not self._current_summary:
            return
        filepath = filedialog.asksaveasfilename(title="Guardar Resumen como JSON", defaultextension=".json",
                                                filetypes=[("JSON", "*.json"), ("Todos", "*.*")])
        if not filepath:
            return
        try:
            filtered = {k: v for k, v in self._current_summary.items() if k not in KEYS_TO_IGNORE}
            export_summary(filtered, filepath)
            print(f"Resumen exportado a {filepath}")
        except OSError as e:
            print(f"Error al exportar JSON: {e}")

    def show_results(self, summary: Optional[Dict[str, Any]]):
        """Punto de entrada principal: muestra métricas y llena la tabla de tags."""
        if not summary:
            self._show_message("Ejecuta una simulación...")
            return
        if "error" in summary:
            self._show_message(f"Error en la Simulación:\n{summary['error']}", color="#FF5555")
            return

        self._clear_results()
        self._current_summary = summary
        card = ctk.CTkFrame(self.metrics_frame, border_width=1, border_color=self.palette["button_hover"], fg_color=self.palette["app_bg"])
        card.grid(row=0, column=0, sticky="ew", padx=5, pady=5)
        for key in METRIC_NAMES_ES:
            if key in summary:
                self._add_metric_row(card, key, summary[key])

        self._populate_manifest_table(summary.get("tags_manifest", []))
        self.export_json_button.configure(state="normal")
