"""Remote control: page-agent polling channel and controller-side session store."""
