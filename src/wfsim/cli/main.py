import sys
import os
import platform
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..sim.requests import load_requests, parse_requests
from ..sim.runner import replay, run_simulation
from ..sim.scenario_definitions import available_scenarios

SCENARIOS_JSON_PATH = "data/scenarios.json"
RESULTS_DIR = Path("results")
MANIFEST_PREVIEW_COUNT = 15

SCENARIO_NAMES_ES = {
    "small-pages": "Páginas Pequeñas",
    "large-pages": "Páginas Grandes",
    "churn-intensive": "Rotación Intensiva",
}

USAGE = "Uso: python -m wfsim [PAGE_SIZE [ARCHIVO_PEDIDOS]]"


def clear_screen():
    if platform.system() == "Windows":
        os.system("cls")
    else:
        os.system("clear")


def print_header(title: str):
    print("\n" + "=" * 60)
    print(f"    {title.upper()}")
    print("=" * 60)


def print_error(message: str):
    print(f"\n[ERROR]: {message}")


def print_success(message: str):
    print(f"\n[EXITO]: {message}")


def pause():
    input("\n... Presiona Enter para continuar ...")


def print_stats(pages: int, size: int, address: int, elapsed_s: float):
    print(f"páginas solicitadas:              {pages}")
    print(f"mayor partición libre (tamaño):   {size}")
    print(f"mayor partición libre (dirección): {address}")
    print(f"tiempo transcurrido:              {elapsed_s:.3f}")


def print_results(summary: Dict[str, Any], partitions: List[tuple]):
    print("\n" + "---" * 20)
    print("    RESUMEN DE LA SIMULACION")
    print("---" * 20)

    print(f"    - Tamaño de Página:      {summary.get('page_size', 0)} B")
    print(f"    - Páginas Solicitadas:   {summary.get('n_pages_requested', 0)}")
    print(f"    - Mayor Libre:           {summary.get('max_free_partition_size', 0)} B "
          f"@ {summary.get('max_free_partition_address', 0)}")
    print(f"    - Pico de Heap:          {summary.get('peak_heap_size', 0):.0f} B")
    print(f"    - Uso de Espacio:        {summary.get('space_usage_pct', 0):.2f} %")
    print(f"    - Frag. Externa:         {summary.get('fragmentation_external_pct', 0):.2f} %")
    print(f"    - Crec./Splits/Fusiones: {summary.get('growth_count', 0)}"
          f"/{summary.get('split_count', 0)}/{summary.get('merge_count', 0)}")
    print(f"    - Ops/Seg (Throughput):  {summary.get('throughput_ops_per_sec', 0):.2f}")
    print(f"    - Tiempo Total Sim.:     {summary.get('elapsed_ms_total', 0):.2f} ms")
    print(f"    - (Heap final con {len(partitions)} particiones)")

    manifest = summary.get("tags_manifest", [])
    if manifest:
        alive = sum(1 for t in manifest if t.get("alive"))
        print(f"    {'-' * 56}")
        print(f"    MANIFEST DE TAGS (Total: {len(manifest)}, Vivos: {alive})")
        print(f"    {'-' * 56}")
        print(f"    {'Tag':<10} {'Reservas':<10} {'Bytes':<12} {'Estado':<10}")
        for t in manifest[:MANIFEST_PREVIEW_COUNT]:
            status = "Vivo" if t.get("alive") else "Liberado"
            print(f"    {t.get('tag', '?'):<10} {t.get('allocations', 0):<10} {t.get('bytes', 0):<12} {status:<10}")
        if len(manifest) > MANIFEST_PREVIEW_COUNT:
            print(f"    ... y {len(manifest) - MANIFEST_PREVIEW_COUNT} tags mas.")

    print("---" * 20)


def _ask_int(prompt: str) -> Optional[int]:
    raw = input(prompt).strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        print_error(f"'{raw}' no es un entero.")
        raise


def _ask_out_path(default_out: str) -> Optional[Path]:
    save_choice = input("\n¿Deseas guardar los resultados en un archivo? (s/n) [n]: ").lower().strip()
    if save_choice != "s":
        return None
    out_file_str = input(f"  Nombre del archivo (en 'results/'): [{default_out}] ").strip()
    return RESULTS_DIR / (out_file_str or default_out)


# ----------------------------------------------------------------------
# Acciones del menú
# ----------------------------------------------------------------------
def do_list_scenarios():
    print_header("Escenarios Disponibles")
    print(f"Cargando escenarios desde {SCENARIOS_JSON_PATH}...")
    try:
        scens = available_scenarios(SCENARIOS_JSON_PATH)
    except Exception as e:
        print_error(f"No se pudo cargar o leer '{SCENARIOS_JSON_PATH}': {e}")
        return
    for name, desc in scens.items():
        print(f"\n  - {name} ({SCENARIO_NAMES_ES.get(name, name)}):")
        print(f"      {desc}")


def do_run_scenario():
    clear_screen()
    print_header("Ejecutar Escenario")
    try:
        scen_list = list(available_scenarios(SCENARIOS_JSON_PATH).keys())
    except Exception as e:
        print_error(f"No se pudieron cargar escenarios: {e}")
        return
    for i, s in enumerate(scen_list):
        print(f"  {i + 1}) {s} ({SCENARIO_NAMES_ES.get(s, s)})")
    try:
        scenario = scen_list[int(input("Elige un escenario (numero): ")) - 1]
        page_size = _ask_int("Tamaño de página (vacío = el del escenario): ")
        seed = _ask_int("Seed numérica (vacío = aleatoria): ")
    except (ValueError, IndexError):
        print_error("Seleccion invalida.")
        return

    overrides = {"page_size": page_size} if page_size is not None else {}
    out_path = _ask_out_path(f"run_{scenario}.json")

    clear_screen()
    print(f"\nIniciando simulacion: {scenario} | seed={seed}...")
    try:
        summary, partitions = run_simulation(
            scenario=scenario,
            scenarios_path=SCENARIOS_JSON_PATH,
            seed=seed,
            overrides=overrides,
            out=str(out_path) if out_path else None,
        )
    except Exception as e:
        print_error(f"La simulacion fallo: {e}")
        return

    if out_path:
        print_success(f"Simulacion completada. Resultados guardados en {out_path}")
    else:
        print_success("Simulacion completada.")
    print_results(summary, partitions)


def do_replay_file():
    clear_screen()
    print_header("Reproducir Archivo de Pedidos")
    path_str = input("  Ruta al archivo (.txt, .json o .csv): ").strip()
    try:
        page_size = _ask_int("  Tamaño de página: ")
    except ValueError:
        return
    if page_size is None:
        print_error("El tamaño de página es obligatorio.")
        return

    try:
        requests = load_requests(path_str)
    except FileNotFoundError:
        print_error(f"El archivo no existe en: {path_str}")
        return
    except ValueError as e:
        print_error(f"Archivo de pedidos inválido: {e}")
        return

    out_path = _ask_out_path(f"replay_{Path(path_str).stem}.json")
    try:
        summary, partitions = run_simulation(
            scenario=None,
            scenarios_path=None,
            seed=None,
            overrides={"page_size": page_size},
            out=str(out_path) if out_path else None,
            requests=requests,
        )
    except Exception as e:
        print_error(f"La simulacion fallo: {e}")
        return
    print_success(f"Se reprodujeron {len(requests)} pedidos.")
    print_results(summary, partitions)


def do_open_ui():
    from ..ui.app import main as ui_main
    ui_main()


def do_exit():
    clear_screen()
    print("\nPrograma Finalizado\n")
    sys.exit()


def print_menu():
    print_header("Simulador de Heap Worst-Fit")
    print("  1. Listar escenarios de prueba")
    print("  2. Ejecutar un escenario")
    print("  3. Reproducir un archivo de pedidos")
    print("  4. Abrir interfaz gráfica")
    print("  5. Salir")
    print("-" * 60)


# ----------------------------------------------------------------------
# Modo batch
# ----------------------------------------------------------------------
def run_batch(argv: List[str]) -> int:
    """
    `PAGE_SIZE [ARCHIVO]`: lee pedidos del archivo (o de stdin), reproduce la
    secuencia e imprime las estadísticas finales. Devuelve el código de salida.
    """
    if len(argv) > 2:
        print_error(USAGE)
        return 1
    try:
        page_size = int(argv[0])
        if len(argv) == 2:
            requests = load_requests(argv[1])
        else:
            requests = parse_requests(sys.stdin)
        result, elapsed = replay(page_size, requests)
    except FileNotFoundError:
        print_error(f"El archivo no existe en: {argv[1]}")
        return 1
    except (ValueError, TypeError) as e:
        print_error(str(e))
        return 1

    print_stats(
        result.n_pages_requested,
        result.max_free_partition_size,
        result.max_free_partition_address,
        elapsed,
    )
    return 0


def main(argv: Optional[List[str]] = None):
    args = sys.argv[1:] if argv is None else argv
    if args:
        if args[0] in ("-h", "--help"):
            print(USAGE)
            return 0
        return run_batch(args)

    try:
        RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print_error(f"No se pudo crear el directorio 'results': {e}")
        sys.exit(1)

    menu_options: Dict[str, Callable[[], None]] = {
        "1": do_list_scenarios,
        "2": do_run_scenario,
        "3": do_replay_file,
        "4": do_open_ui,
        "5": do_exit,
    }

    while True:
        clear_screen()
        print_menu()
        choice = input("Selecciona una opcion (1-5): ")

        action = menu_options.get(choice)
        if action:
            clear_screen()
            action()
        else:
            print_error("Opcion no valida.")
        pause()


if __name__ == "__main__":
    sys.exit(main())
