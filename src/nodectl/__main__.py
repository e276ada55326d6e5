from nodectl.apps.cli.app import app

app(prog_name="nodectl")
