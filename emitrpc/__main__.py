from emitrpc.cli.commands import app

app()
