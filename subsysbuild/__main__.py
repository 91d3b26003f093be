from subsysbuild.main import cli

cli()
