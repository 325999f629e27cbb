import customtkinter as ctk
from customtkinter import filedialog
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..sim.requests import Request, load_requests
from ..sim.runner import run_simulation
from ..sim.scenario_definitions import available_scenarios

SCENARIOS_JSON_PATH = "data/scenarios.json"
ERROR_COLOR = "#FF5555"


class ScenarioView(ctk.CTkFrame):
    """
    Vista para configurar y lanzar una simulación: escenario base, tamaño de página,
    seed, modo demo y (opcional) un archivo de pedidos importado.
    """

    def __init__(self,
                 master,
                 on_run_start: Callable[[], None],
                 on_run_complete: Callable[[Dict[str, Any], Optional[List[Tuple[int, int, int]]]], None],
                 on_live_update: Callable[[List[Tuple[int, int, int]]], None],
                 palette: Dict[str, str],
                 **kwargs):
        super().__init__(master, **kwargs)
        self.on_run_start = on_run_start
        self.on_run_complete = on_run_complete
        self.on_live_update = on_live_update
        self.palette = palette

        self.imported_requests: Optional[List[Request]] = None

        config_frame = ctk.CTkFrame(self, fg_color="transparent")
        config_frame.pack(pady=20, padx=20, fill="x", expand=False)
        config_frame.grid_columnconfigure(0, weight=0, minsize=160)
        config_frame.grid_columnconfigure(1, weight=1)

        label_style = {"text_color": self.palette["text_light"]}
        button_style = {
            "fg_color": self.palette["button"],
            "hover_color": self.palette["button_hover"],
            "text_color": self.palette["text_on_button"]
        }
        entry_style = {
            "border_color": self.palette["button"],
            "text_color": self.palette["text_light"],
            "fg_color": self.palette["app_bg"]
        }

        row = 0
        ctk.CTkLabel(config_frame, text="Escenario Base:", anchor="w", **label_style).grid(row=row, column=0, pady=5, sticky="w")
        self.scenario_keys = self._load_scenario_keys()
        self.scenario_var = ctk.StringVar(value=self.scenario_keys[0] if self.scenario_keys else "Sin Escenarios")
        self.scenario_menu = ctk.CTkOptionMenu(
            config_frame, variable=self.scenario_var, values=self.scenario_keys or ["Sin Escenarios"],
            fg_color=self.palette["button"], button_color=self.palette["button"],
            button_hover_color=self.palette["button_hover"], text_color=self.palette["text_on_button"],
        )
        self.scenario_menu.grid(row=row, column=1, pady=5, sticky="ew")
        row += 1

        ctk.CTkLabel(config_frame, text="Tamaño de Página (B):", anchor="w", **label_style).grid(row=row, column=0, pady=5, sticky="w")
        self.page_size_entry = ctk.CTkEntry(config_frame, placeholder_text="Vacío = el del escenario", **entry_style)
        self.page_size_entry.grid(row=row, column=1, pady=5, sticky="ew")
        row += 1

        ctk.CTkLabel(config_frame, text="Seed (Semilla):", anchor="w", **label_style).grid(row=row, column=0, pady=5, sticky="w")
        self.seed_entry = ctk.CTkEntry(config_frame, placeholder_text="Vacío para aleatorio", **entry_style)
        self.seed_entry.grid(row=row, column=1, pady=5, sticky="ew")
        row += 1

        self.slow_mo_var = ctk.BooleanVar(value=False)
        ctk.CTkCheckBox(
            config_frame, text="Activar visualización lenta (Modo Demo)", variable=self.slow_mo_var,
            text_color=self.palette["text_light"], border_color=self.palette["button"],
            hover_color=self.palette["button_hover"], fg_color=self.palette["button"],
        ).grid(row=row, column=0, columnspan=2, pady=10, sticky="w")
        row += 1

        import_frame = ctk.CTkFrame(config_frame, fg_color="transparent")
        import_frame.grid(row=row, column=0, columnspan=2, sticky="ew", pady=10)
        ctk.CTkButton(import_frame, text="Importar Pedidos", command=self._import_requests, **button_style).pack(side="left")
        ctk.CTkButton(import_frame, text="Quitar Pedidos", command=self._clear_requests, **button_style).pack(side="left", padx=10)
        self.import_label = ctk.CTkLabel(import_frame, text="Usando carga aleatoria del escenario", **label_style)
        self.import_label.pack(side="left", padx=10)
        row += 1

        self.run_button = ctk.CTkButton(config_frame, text="Ejecutar Simulación", command=self._start_simulation, **button_style)
        self.run_button.grid(row=row, column=0, columnspan=2, pady=20)
        row += 1

        self.status_label = ctk.CTkLabel(config_frame, text="", **label_style)
        self.status_label.grid(row=row, column=0, columnspan=2)

    def _load_scenario_keys(self) -> List[str]:
        try:
            return list(available_scenarios(SCENARIOS_JSON_PATH).keys())
        except Exception as e:
            print(f"Error cargando scenarios.json: {e}")
            return []

    def _import_requests(self):
        filepath = filedialog.askopenfilename(
            title="Importar Pedidos",
            filetypes=[("Pedidos", "*.txt *.json *.csv"), ("Todos", "*.*")]
        )
        if not filepath:
            return
        try:
            self.imported_requests = load_requests(filepath)
        except (OSError, ValueError) as e:
            self.imported_requests = None
            self.status_label.configure(text=f"Error al importar: {e}", text_color=ERROR_COLOR)
            return
        self.import_label.configure(text=f"{len(self.imported_requests)} pedidos importados")
        self.status_label.configure(text="", text_color=self.palette["text_light"])

    def _clear_requests(self):
        self.imported_requests = None
        self.import_label.configure(text="Usando carga aleatoria del escenario")

    def _start_simulation(self):
        overrides: Dict[str, Any] = {}
        page_str = self.page_size_entry.get().strip()
        if page_str:
            if not page_str.isdigit():
                self.status_label.configure(text="Error: el tamaño de página debe ser un entero.", text_color=ERROR_COLOR)
                return
            overrides["page_size"] = int(page_str)
        seed_str = self.seed_entry.get().strip()
        seed_val = int(seed_str) if seed_str.isdigit() else None

        scenario_key = self.scenario_var.get()
        if scenario_key not in self.scenario_keys:
            self.status_label.configure(text=f"Error: escenario '{scenario_key}' no encontrado.", text_color=ERROR_COLOR)
            return

        self.run_button.configure(state="disabled", text="Ejecutando...")
        self.status_label.configure(text="Iniciando simulación...", text_color=self.palette["text_light"])
        if self.on_run_start:
            self.on_run_start()

        thread = threading.Thread(
            target=self._run_simulation_thread,
            args=(scenario_key, overrides, seed_val, 5 if self.slow_mo_var.get() else 0),
            daemon=True
        )
        thread.start()

    def _run_simulation_thread(self, scenario_key: str, overrides: Dict[str, Any], seed_val: Optional[int], slowdown_val: int):
        try:
            summary, partitions = run_simulation(
                scenario=scenario_key,
                scenarios_path=SCENARIOS_JSON_PATH,
                seed=seed_val,
                overrides=overrides,
                requests=self.imported_requests,
                on_heap_update=self.on_live_update,
                ui_slowdown_ms=slowdown_val,
            )
            self.after(0, self._simulation_complete, summary, partitions)
        except Exception as e:
            print(f"Error en el hilo de simulación: {e}")
            self.after(0, self._simulation_error, e)

    def _simulation_complete(self, summary: Dict[str, Any], partitions: List[Tuple[int, int, int]]):
        self.status_label.configure(text="Simulación completada.", text_color=self.palette["text_light"])
        self.run_button.configure(state="normal", text="Ejecutar Simulación")
        if self.on_run_complete:
            self.on_run_complete(summary, partitions)

    def _simulation_error(self, error: Exception):
        self.status_label.configure(text=f"Error: {error}", text_color=ERROR_COLOR)
        self.run_button.configure(state="normal", text="Ejecutar Simulación")
        if self.on_run_complete:
            self.on_run_complete({"error": str(error)}, None)
