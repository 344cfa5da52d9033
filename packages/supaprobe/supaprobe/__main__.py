from supaprobe.cli.main import app

app()
