# RbLint command line wrappers
