import customtkinter as ctk
from typing import Dict, List, Optional, Tuple
import time

from ..core.partition import FREE_TAG

# --- CONSTANTES DE DIBUJO ---
CELL_SIZE_PX = 4
CELL_PAD_PX = 1
COLS = 170
ROWS = 40

Snapshot = List[Tuple[int, int, int]]


def scale_partitions(partitions: Snapshot, n_cells: int) -> List[Tuple[int, int, bool]]:
    """
    Proyecta las particiones [(address, size, tag), ...] sobre `n_cells` celdas.
    Devuelve runs (celda_inicio, celda_fin, libre) sin solapes; las particiones de
    tamaño 0 no ocupan celdas.
    """
    if not partitions:
        return []
    total = partitions[-1][0] + partitions[-1][1]
    if total <= 0:
        return []
    runs: List[Tuple[int, int, bool]] = []
    for address, size, tag in partitions:
        if size == 0:
            continue
        start = address * n_cells // total
        end = max(start, (address + size) * n_cells // total - 1)
        if runs and runs[-1][1] >= start:
            start = runs[-1][1] + 1
        if start > end or start >= n_cells:
            continue
        runs.append((start, end, tag == FREE_TAG))
    return runs


class HeapView(ctk.CTkFrame):
    """
    Mapa del heap (en vivo y final). Cada celda representa total/COLS*ROWS bytes;
    las actualizaciones en vivo se limitan a una cada `_live_update_throttle_ms`.
    """
    def __init__(self, master, palette: Dict[str, str], **kwargs):
        super().__init__(master, **kwargs)
        self.palette = palette
        self.configure(fg_color="transparent")
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self.COLOR_FREE = self.palette["button_hover"]
        self.COLOR_USED = self.palette["used"]

        self.info_label = ctk.CTkLabel(
            self, text="Ejecuta una simulación para ver el estado del heap.",
            font=ctk.CTkFont(size=16), text_color=self.palette["text_light"]
        )
        self.info_label.grid(row=0, column=0, padx=10, pady=(0, 5), sticky="w")

        legend = ctk.CTkFrame(self, fg_color="transparent")
        legend.grid(row=1, column=0, padx=15, sticky="w")
        for color, text in ((self.COLOR_USED, "Ocupado"), (self.COLOR_FREE, "Libre")):
            ctk.CTkFrame(legend, width=15, height=15, fg_color=color).pack(side="left", padx=(0, 5))
            ctk.CTkLabel(legend, text=text, text_color=self.palette["text_light"]).pack(side="left", padx=(0, 20))

        self.canvas = ctk.CTkCanvas(
            self, bg=self.palette["frame_bg"], highlightthickness=0,
            width=COLS * (CELL_SIZE_PX + CELL_PAD_PX), height=ROWS * (CELL_SIZE_PX + CELL_PAD_PX)
        )
        self.canvas.grid(row=2, column=0, pady=10, padx=10, sticky="n")

        self._last_live_update_time = 0.0
        self._live_update_throttle_ms = 50

    def _draw_run(self, start_index: int, end_index: int, is_free: bool):
        """Dibuja un run de celdas, partiéndolo por filas."""
        color = self.COLOR_FREE if is_free else self.COLOR_USED
        current = start_index
        while current <= end_index:
            row = current // COLS
            col_start = current % COLS
            in_row = min(COLS - col_start, end_index - current + 1)
            x1 = col_start * (CELL_SIZE_PX + CELL_PAD_PX)
            y1 = row * (CELL_SIZE_PX + CELL_PAD_PX)
            x2 = (col_start + in_row) * (CELL_SIZE_PX + CELL_PAD_PX) - CELL_PAD_PX
            self.canvas.create_rectangle(x1, y1, max(x1 + 1, x2), y1 + CELL_SIZE_PX, fill=color, outline="")
            current += in_row

    def _draw(self, partitions: Snapshot):
        self.canvas.delete("all")
        for start, end, is_free in scale_partitions(partitions, COLS * ROWS):
            self._draw_run(start, end, is_free)

    def live_update(self, partitions: Snapshot):
        """Llamado DESDE EL HILO DE SIMULACIÓN (vía runner)."""
        now = time.monotonic()
        if (now - self._last_live_update_time) * 1000.0 < self._live_update_throttle_ms:
            return
        self._last_live_update_time = now
        self.after(0, self._safe_live_update, list(partitions))

    def _safe_live_update(self, partitions: Snapshot):
        """Se ejecuta EN EL HILO PRINCIPAL de la UI."""
        if not self.winfo_exists():
            return
        self.info_label.configure(text=f"Simulando en vivo: {len(partitions)} particiones...")
        self._draw(partitions)

    def show_final_snapshot(self, partitions: Optional[Snapshot]):
        """Punto de entrada para el heap FINAL."""
        if partitions is None:
            self.canvas.delete("all")
            self.info_label.configure(text="La simulación falló. No hay heap para mostrar.")
            return
        total = partitions[-1][0] + partitions[-1][1] if partitions else 0
        self.info_label.configure(text=f"Heap final: {total} B en {len(partitions)} particiones")
        self._draw(partitions)
