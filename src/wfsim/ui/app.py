PALETTE = {
    "app_bg": "#1B2430",        # Fondo más oscuro
    "frame_bg": "#2C3A4B",      # Fondo de frames/sidebar
    "button": "#3F7F6F",        # Color de botones
    "button_hover": "#8CC0A8",  # Hover y acentos
    "text_light": "#D6E4DC",    # Texto principal
    "text_on_button": "#FFFFFF",  # Texto sobre botones
    "used": "#C06C50",          # Particiones ocupadas en el mapa del heap
}


def main():
    """
    Punto de entrada de la UI (opcional). Requiere customtkinter y un entorno gráfico.
    """
    try:
        import customtkinter as ctk
        from .main_view import MainView

        ctk.set_appearance_mode("dark")

        app = ctk.CTk()
        app.title("WFSim - Simulador de Heap Worst-Fit")
        app.geometry("1100x700")
        app.configure(fg_color=PALETTE["app_bg"])

        main_view = MainView(master=app, palette=PALETTE)
        main_view.pack(fill="both", expand=True, padx=10, pady=10)

        app.mainloop()

    except ImportError as e:
        print(f"Error: falta una dependencia de la UI ({e}).")
        print("Ejecuta 'pip install customtkinter matplotlib numpy' para usar la UI.")
        print("Como alternativa, usa la CLI: python -m wfsim ...")
    except Exception as e:
        print(f"No se pudo iniciar la UI: {e}")
        print("Asegúrate de tener un entorno gráfico (DISPLAY) disponible.")
        print("Como alternativa, usa la CLI: python -m wfsim ...")


if __name__ == "__main__":
    main()
