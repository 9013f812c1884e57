# Data models: projects, scripts, tree nodes and terminal buffers
