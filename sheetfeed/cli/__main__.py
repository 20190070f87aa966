from sheetfeed.cli.main import app

app(prog_name="sheetfeed")
