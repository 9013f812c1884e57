# Dashboard services
