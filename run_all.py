"""
PoliceDeskVN – run_all.py
Convenience launcher: starts FastAPI + opens dashboard in browser.
Run: python run_all.py [--seed]
"""
import subprocess, sys, time, webbrowser, os

API_PORT = os.getenv("API_PORT", "8000")

def main():
    print("\n PoliceDeskVN – Starting services …\n")

    # 1. Demo data on request
    if "--seed" in sys.argv:
        print(" Seeding demo data …")
        subprocess.run([sys.executable, "-m", "scripts.seed_demo"], check=True)

    # 2. Start FastAPI
    api = subprocess.Popen([
        sys.executable, "-m", "uvicorn", "main:app",
        "--host", "0.0.0.0", "--port", API_PORT,
    ])
    print(f" ✓ API starting on http://localhost:{API_PORT}")
    time.sleep(3)

    # 3. Start Streamlit
    ui = subprocess.Popen([
        sys.executable, "-m", "streamlit", "run", "ui/dashboard.py",
        "--server.port", "8501", "--server.headless", "true"
    ])
    print(" ✓ Dashboard starting on http://localhost:8501")
    time.sleep(3)

    webbrowser.open("http://localhost:8501")
    print("\n Press Ctrl+C to stop all services.\n")

    try:
        api.wait()
    except KeyboardInterrupt:
        print("\n Shutting down …")
        api.terminate()
        ui.terminate()

if __name__ == "__main__":
    main()
