from cluster_config.cli import app

app()
