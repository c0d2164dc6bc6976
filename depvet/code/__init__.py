"""Source code analysis: file system repositories, the Python language adapter, syntax nodes and code graph building."""